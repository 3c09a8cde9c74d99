"""Normalize raw provider output into canonical Review records.

Model output is semi-structured at best. Extraction is attempted in order:

1. The whole text as strict JSON
2. A fenced code block labelled ``json``
3. Any fenced code block
4. The first balanced ``{...}`` substring in free text

Output that survives none of these is not dropped: it becomes an abstain
review carrying the raw text as its summary.
"""

import json
import logging
import re
from typing import Any

from multi_review.models.issues import Issue, Severity
from multi_review.models.review import Review, Verdict

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
UNPARSED_CONFIDENCE = 0.5
DEFAULT_SUMMARY = "No summary provided"

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[^\n`]*\n?([\s\S]*?)```")

_TIMEOUT_PATTERN = re.compile(r"timeout|timed out", re.IGNORECASE)
_NETWORK_PATTERN = re.compile(
    r"connection refused|network|dns|could not resolve|failed to connect|connect ?error",
    re.IGNORECASE,
)
_AUTH_PATTERN = re.compile(
    r"unauthorized|authentication|invalid.*(api.key|token|credentials)|\b401\b|\b403\b",
    re.IGNORECASE,
)
_NOT_AUTH_PATTERN = re.compile(r"max_tokens|invalid.*request|model.*not.*found", re.IGNORECASE)

_ERROR_LABELS = {
    Verdict.ERROR_TIMEOUT: "Timeout",
    Verdict.ERROR_NETWORK: "Network Error",
    Verdict.ERROR_AUTH: "Auth Error",
    Verdict.ERROR_SERVICE: "Service Error",
}


def classify_error(message: str) -> Verdict:
    """Best-effort mapping from free-text error messages to an error verdict."""
    if _TIMEOUT_PATTERN.search(message):
        return Verdict.ERROR_TIMEOUT
    if _NETWORK_PATTERN.search(message):
        return Verdict.ERROR_NETWORK
    if _AUTH_PATTERN.search(message) and not _NOT_AUTH_PATTERN.search(message):
        return Verdict.ERROR_AUTH
    return Verdict.ERROR_SERVICE


def extract_json(text: str) -> dict[str, Any] | None:
    """Pull a JSON object out of model output, or return None."""
    text = text.strip()
    if not text:
        return None

    candidates = [text]
    match = _JSON_FENCE.search(text)
    if match:
        candidates.append(match.group(1))
    match = _ANY_FENCE.search(text)
    if match:
        candidates.append(match.group(1))
    balanced = _first_balanced_object(text)
    if balanced:
        candidates.append(balanced)

    for candidate in candidates:
        try:
            data = json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _first_balanced_object(text: str) -> str | None:
    """Return the first brace-balanced substring, honouring string literals."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            c = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from here; try the next opening brace
        start = text.find("{", start + 1)
    return None


def normalize_output(provider: str, model: str, text: str, duration_ms: int = 0) -> Review:
    """Convert raw model text into a Review, degrading instead of failing."""
    if not text or not text.strip():
        return abstain_review(
            provider, model, "Empty response from provider", duration_ms,
            error="No content in provider response",
        )

    data = extract_json(text)
    if data is None:
        logger.warning(f"Provider {provider} returned unstructured output, abstaining")
        return Review(
            provider=provider,
            model=model,
            verdict=Verdict.ABSTAIN,
            confidence=UNPARSED_CONFIDENCE,
            summary=text.strip(),
            duration_ms=duration_ms,
        )

    return normalize_payload(provider, model, data, duration_ms)


def normalize_payload(
    provider: str, model: str, data: dict[str, Any], duration_ms: int = 0
) -> Review:
    """Coerce a parsed JSON object into a Review."""
    verdict = Verdict.parse(data.get("verdict"))
    confidence = _coerce_confidence(data.get("confidence"))
    issues = _parse_issues(provider, confidence, data.get("issues"))
    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = DEFAULT_SUMMARY
    error = data.get("error")

    return Review(
        provider=provider,
        model=str(data.get("model") or model),
        verdict=verdict,
        confidence=confidence,
        issues=tuple(issues),
        summary=summary,
        error=str(error) if error else None,
        duration_ms=duration_ms,
    )


def error_review(
    provider: str,
    model: str,
    message: str,
    verdict: Verdict | None = None,
    duration_ms: int = 0,
) -> Review:
    """Build a non-voting failure review."""
    verdict = verdict or classify_error(message)
    label = _ERROR_LABELS.get(verdict, "Service Error")
    return Review(
        provider=provider,
        model=model,
        verdict=verdict,
        confidence=0.0,
        summary=f"{label}: {message}",
        error=message,
        duration_ms=duration_ms,
    )


def abstain_review(
    provider: str,
    model: str,
    reason: str,
    duration_ms: int = 0,
    error: str | None = None,
) -> Review:
    """Build an abstain review for a provider that could not give an opinion."""
    return Review(
        provider=provider,
        model=model,
        verdict=Verdict.ABSTAIN,
        confidence=0.0,
        summary=f"Review abstained: {reason}",
        error=error,
        duration_ms=duration_ms,
    )


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _parse_issues(provider: str, confidence: float, raw_issues: Any) -> list[Issue]:
    """Parse issues from a provider payload, skipping malformed entries."""
    if not isinstance(raw_issues, list):
        return []

    issues = []
    for raw in raw_issues:
        if not isinstance(raw, dict):
            logger.warning(f"Failed to parse issue from {provider}: not an object, raw: {raw!r}")
            continue
        title = str(raw.get("title") or "").strip()
        description = str(raw.get("description") or "").strip()
        suggestion = raw.get("suggestion")
        issues.append(
            Issue(
                severity=Severity.parse(raw.get("severity")),
                category=str(raw.get("category") or "general").strip().lower(),
                title=title or description[:80] or "Untitled issue",
                description=description,
                provider=provider,
                provider_confidence=confidence,
                file=str(raw["file"]) if raw.get("file") else None,
                line=_coerce_line(raw.get("line")),
                suggestion=str(suggestion) if suggestion else None,
            )
        )
    return issues


def _coerce_line(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        line = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return line if line >= 0 else None
