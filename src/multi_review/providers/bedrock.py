"""Amazon Bedrock review provider (Nova models)."""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

import boto3
import httpx
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from multi_review.config import ProviderSettings
from multi_review.providers.base import (
    ProviderAbstainedError,
    ProviderCallError,
    RetryPolicy,
    ReviewProvider,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


class BedrockProvider(ReviewProvider):
    """Provider backed by the Bedrock Runtime InvokeModel API.

    Credentials come from AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY (with an
    optional AWS_SESSION_TOKEN) or from a named AWS_PROFILE. The boto3 client
    is synchronous, so each call runs in a worker thread.
    """

    NAME = "bedrock"
    KIND = "cloud"
    DEFAULT_MODEL = "us.amazon.nova-pro-v1:0"
    KEY_VARS = ("AWS_ACCESS_KEY_ID",)
    SYSTEM_PROMPT = (
        "You are an expert code reviewer. Always respond with valid JSON containing "
        "verdict, confidence, issues array, and summary fields."
    )

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        environ: Mapping[str, str] | None = None,
        runtime: Any = None,
    ) -> None:
        super().__init__(settings=settings, client=client, retry=retry, environ=environ)
        self._runtime = runtime

    @property
    def region(self) -> str:
        return (
            self.settings.options.get("region")
            or self._environ.get("AWS_REGION")
            or self._environ.get("AWS_DEFAULT_REGION")
            or DEFAULT_REGION
        )

    @property
    def runtime(self) -> Any:
        """Lazy-load the bedrock-runtime client."""
        if self._runtime is None:
            session = boto3.Session(
                aws_access_key_id=self._environ.get("AWS_ACCESS_KEY_ID") or None,
                aws_secret_access_key=self._environ.get("AWS_SECRET_ACCESS_KEY") or None,
                aws_session_token=self._environ.get("AWS_SESSION_TOKEN") or None,
                profile_name=self._environ.get("AWS_PROFILE") or None,
                region_name=self.region,
            )
            # Rate limits are retried by RetryPolicy, not by botocore
            self._runtime = session.client(
                "bedrock-runtime",
                config=BotoConfig(
                    read_timeout=self.timeout_seconds or 120,
                    retries={"max_attempts": 0},
                ),
            )
        return self._runtime

    def is_configured(self) -> bool:
        env = self._environ
        if env.get("AWS_ACCESS_KEY_ID") and env.get("AWS_SECRET_ACCESS_KEY"):
            return True
        return bool(env.get("AWS_PROFILE"))

    def missing_configuration(self) -> str:
        return "AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY or AWS_PROFILE not set"

    def info(self) -> dict[str, Any]:
        info = super().info()
        info["region"] = self.region
        return info

    async def _complete(self, prompt: str) -> str:
        request = {
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "system": [{"text": self.SYSTEM_PROMPT}],
            "inferenceConfig": {
                "maxTokens": self.settings.max_tokens,
                "temperature": self.settings.temperature,
                "topP": 0.9,
            },
        }

        try:
            body = await asyncio.to_thread(self._invoke, request)
        except ClientError as e:
            raise _call_error(e) from e
        except NoCredentialsError as e:
            raise ProviderAbstainedError("AWS credentials not configured", str(e)) from e
        except (ConnectTimeoutError, ReadTimeoutError) as e:
            raise ProviderCallError(f"Request timed out: {e}") from e
        except EndpointConnectionError as e:
            raise ProviderCallError(f"Network error: {e}") from e
        except BotoCoreError as e:
            raise ProviderCallError(f"{type(e).__name__}: {e}") from e

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise ProviderCallError(str(message or error))

        message = (body.get("output") or {}).get("message") or {}
        text = "".join(
            block.get("text", "")
            for block in message.get("content") or []
            if isinstance(block, dict)
        )
        if not text.strip():
            # Older text-completion models
            text = str(body.get("completion") or "")
        if not text.strip():
            raise ProviderAbstainedError("Empty response from API", "No content in API response")
        return text

    def _invoke(self, request: dict[str, Any]) -> dict[str, Any]:
        """Blocking InvokeModel call; returns the decoded response body."""
        logger.debug(f"Invoking {self.model} in {self.region}")
        response = self.runtime.invoke_model(
            modelId=self.model,
            body=json.dumps(request),
            contentType="application/json",
            accept="application/json",
        )
        body = json.loads(response["body"].read())
        return body if isinstance(body, dict) else {}


def _call_error(error: ClientError) -> ProviderCallError:
    """Map a botocore ClientError to a ProviderCallError with its HTTP status."""
    details = error.response.get("Error", {})
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    code = details.get("Code", "ClientError")
    message = details.get("Message", "Unknown error")
    prefix = f"HTTP {status} " if status else ""
    return ProviderCallError(f"{prefix}{code}: {message}", status_code=status)
