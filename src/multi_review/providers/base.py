"""Base class for review providers."""

import asyncio
import logging
import os
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from multi_review.config import ProviderSettings, RetrySettings
from multi_review.models.context import ReviewContext
from multi_review.models.review import Review, Verdict
from multi_review.providers.normalizer import (
    abstain_review,
    classify_error,
    error_review,
    normalize_output,
)

logger = logging.getLogger(__name__)

_RATE_LIMIT_PATTERN = re.compile(r"rate.limit|\b429\b|too.many.requests", re.IGNORECASE)


class ProviderCallError(Exception):
    """Raised when a provider's API reports a failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Whether this failure is a transient rate-limit condition."""
        return self.status_code == 429 or bool(_RATE_LIMIT_PATTERN.search(str(self)))


class ProviderAbstainedError(Exception):
    """Raised when a provider answered but gave no usable opinion."""

    def __init__(self, reason: str, error: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.error = error


@dataclass
class RetryPolicy:
    """Bounded exponential backoff for rate-limited calls."""

    max_attempts: int = 3
    base_delay_seconds: float = 2

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_seconds=settings.base_delay_seconds,
        )


REVIEW_PROMPT = """You are reviewing a code change for a pull request.

{context}
## Your Task
Review the following code diff and identify:
1. **Security Issues** - Vulnerabilities, injection risks, authentication problems
2. **Logic Errors** - Bugs, incorrect behavior, edge cases not handled
3. **Performance Issues** - Inefficiencies, N+1 queries, memory leaks
4. **Style Issues** - Convention violations, naming issues, missing documentation

## Response Format
You MUST respond with a valid JSON object containing:
{{
    "verdict": "critical_vulnerabilities" | "needs_review" | "provide_feedback" | "comment_only" | "approve" | "abstain",
    "confidence": 0.0 to 1.0,
    "issues": [
        {{
            "severity": "critical" | "major" | "minor" | "suggestion",
            "category": "security" | "logic" | "performance" | "style" | "documentation",
            "file": "path/to/file",
            "line": 42,
            "title": "Brief issue title",
            "description": "Detailed explanation of the issue",
            "suggestion": "Optional: suggested fix or improvement"
        }}
    ],
    "summary": "One paragraph overall assessment of the code change"
}}

## Verdict Guidelines
- **critical_vulnerabilities**: Security holes, data leaks, authentication bypasses - MUST fix before merge
- **needs_review**: Complex changes requiring human judgment, architectural decisions, unclear requirements
- **provide_feedback**: Has suggestions/improvements but code is functional and safe to merge
- **comment_only**: Informational observations, style preferences, no action needed
- **approve**: Code looks good, no issues found
- **abstain**: Cannot determine (insufficient context or unclear changes)

Focus on actionable feedback. Be specific about file paths and line numbers.

## Code Diff
```diff
{diff}
```

{closing}"""


class ReviewProvider:
    """Base class for all review providers.

    Subclasses implement ``_complete`` (one logical call returning the model's
    raw text). ``review`` wraps it so that every failure becomes a Review.
    """

    # Subclasses should override these
    NAME: str = "base"
    KIND: str = "cloud"  # "cloud" needs a credential, "local" needs to be enabled
    DEFAULT_MODEL: str = "unknown"
    DEFAULT_BASE_URL: str = ""
    KEY_VARS: tuple[str, ...] = ()
    SYSTEM_PROMPT: str = "You are an expert code reviewer. Always respond with valid JSON."
    CLOSING_INSTRUCTION: str = "Please provide your review as a JSON object."

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            settings: Provider configuration (model, tokens, timeout)
            client: Shared HTTP client; one is created lazily if omitted
            retry: Rate-limit retry policy
            environ: Environment to read credentials from (default: os.environ)
        """
        self.settings = settings or ProviderSettings()
        self.retry = retry or RetryPolicy()
        self._environ = os.environ if environ is None else environ
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def model(self) -> str:
        return self.settings.model or self.DEFAULT_MODEL

    @property
    def base_url(self) -> str:
        return (self.settings.base_url or self.DEFAULT_BASE_URL).rstrip("/")

    @property
    def timeout_seconds(self) -> float | None:
        """Per-provider timeout override, or None for the dispatcher default."""
        return self.settings.timeout_seconds

    @property
    def enabled_by_config(self) -> bool:
        if self.settings.enabled is not None:
            return self.settings.enabled
        return self.KIND == "cloud"

    @property
    def key_var(self) -> str | None:
        """The credential variable in use (or the preferred one if none is set)."""
        for var in self.KEY_VARS:
            if self._environ.get(var):
                return var
        return self.KEY_VARS[0] if self.KEY_VARS else None

    @property
    def api_key(self) -> str:
        return self._environ.get(self.key_var, "") if self.key_var else ""

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds or 120)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def is_configured(self) -> bool:
        """Whether the provider's preconditions (credentials etc.) are met."""
        if self.KIND == "cloud":
            return bool(self.api_key)
        return True

    def missing_configuration(self) -> str:
        """Human-readable reason ``is_configured`` is False."""
        names = " or ".join(self.KEY_VARS) or "credentials"
        return f"{names} environment variable not set"

    def classify_error(self, message: str) -> Verdict:
        """Map an error message to an error verdict. Override for custom rules."""
        return classify_error(message)

    def info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.KIND,
            "model": self.model,
            "enabled": self.enabled_by_config,
            "configured": self.is_configured(),
        }

    async def review(self, diff: str, context: ReviewContext | dict[str, Any] | None) -> Review:
        """Perform a code review and return a Review. Never raises on provider failure.

        Args:
            diff: The unified diff to review
            context: PR context (ReviewContext or a dict with the same keys)

        Returns:
            Review, which is an error or abstain record if the call failed
        """
        start_time = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - start_time) * 1000)

        if not self.is_configured():
            reason = self.missing_configuration()
            logger.warning(f"Provider {self.name} not configured: {reason}")
            return abstain_review(self.name, self.model, f"{self.name} not configured", error=reason)

        prompt = self.build_prompt(diff, ReviewContext.coerce(context))

        try:
            content = await self._complete_with_retry(prompt)
        except ProviderAbstainedError as e:
            logger.warning(f"Provider {self.name} abstained: {e.reason}")
            return abstain_review(self.name, self.model, e.reason, elapsed_ms(), error=e.error)
        except ProviderCallError as e:
            logger.warning(f"Provider {self.name} failed: {e}")
            return error_review(
                self.name, self.model, str(e), self.classify_error(str(e)), elapsed_ms()
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Provider {self.name} request timed out: {e!r}")
            return error_review(
                self.name, self.model, f"Request timed out: {e!r}", Verdict.ERROR_TIMEOUT, elapsed_ms()
            )
        except httpx.TransportError as e:
            logger.warning(f"Provider {self.name} network failure: {e!r}")
            return error_review(
                self.name, self.model, f"Network error: {e!r}", Verdict.ERROR_NETWORK, elapsed_ms()
            )
        except Exception as e:
            logger.exception(f"Provider {self.name} failed unexpectedly")
            message = f"{type(e).__name__}: {e}"
            return error_review(
                self.name, self.model, message, self.classify_error(message), elapsed_ms()
            )

        try:
            review = normalize_output(self.name, self.model, content, elapsed_ms())
        except Exception as e:
            logger.exception(f"Provider {self.name} returned output that could not be normalized")
            return abstain_review(
                self.name, self.model, "Invalid response format", elapsed_ms(),
                error=f"{type(e).__name__}: {e}",
            )
        logger.info(
            f"Provider {self.name} completed: {review.verdict.value} "
            f"({len(review.issues)} issues, {review.duration_ms}ms)"
        )
        return review

    def build_prompt(self, diff: str, context: ReviewContext) -> str:
        """Build the user prompt for the review request."""
        return REVIEW_PROMPT.format(
            context=context.to_prompt_context(),
            diff=diff,
            closing=self.CLOSING_INSTRUCTION,
        )

    async def _complete_with_retry(self, prompt: str) -> str:
        """Call ``_complete``, retrying only on rate-limit failures."""
        delay = self.retry.base_delay_seconds
        attempts = max(1, self.retry.max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                return await self._complete(prompt)
            except ProviderCallError as e:
                if not e.retryable or attempt >= attempts:
                    raise
                logger.warning(
                    f"Provider {self.name} rate limited, waiting {delay}s "
                    f"(attempt {attempt}/{attempts})"
                )
                await asyncio.sleep(delay)
                delay *= 2

        raise AssertionError("unreachable")

    async def _complete(self, prompt: str) -> str:
        """Send the prompt and return the model's raw text output."""
        raise NotImplementedError

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded body.

        Raises:
            ProviderCallError: On an HTTP error status or an error object in the body
        """
        response = await self.client.post(
            url,
            json=payload,
            headers=headers,
            timeout=self.timeout_seconds or 120,
        )
        body = _decode_body(response)
        detail = _error_detail(body)

        if response.status_code >= 400:
            raise ProviderCallError(
                f"HTTP {response.status_code} {detail or response.text[:200]}".strip(),
                status_code=response.status_code,
            )
        if detail:
            raise ProviderCallError(detail, status_code=response.status_code)
        return body


def _decode_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_detail(body: dict[str, Any]) -> str:
    """Extract an error description from the common API error shapes."""
    error = body.get("error")
    if not error:
        return ""
    if isinstance(error, dict):
        kind = error.get("type") or error.get("status") or error.get("code") or "api_error"
        message = error.get("message") or "Unknown error"
        return f"{kind}: {message}"
    return str(error)
