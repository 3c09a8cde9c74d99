"""xAI Grok review provider."""

import re
from typing import Any

from multi_review.models.review import Verdict
from multi_review.providers.base import ProviderAbstainedError, ReviewProvider

_QUOTA_PATTERN = re.compile(r"quota|credits?|spending limit", re.IGNORECASE)


class XAIProvider(ReviewProvider):
    """Provider backed by the xAI Responses API.

    Accepts either XAI_API_KEY or GROK_API_KEY. Server-side tools (web search,
    code interpreter) are enabled unless ``enable_tools`` is false.
    """

    NAME = "xai"
    KIND = "cloud"
    DEFAULT_MODEL = "grok-4-fast-non-reasoning"
    DEFAULT_BASE_URL = "https://api.x.ai/v1"
    KEY_VARS = ("XAI_API_KEY", "GROK_API_KEY")

    @property
    def tools_enabled(self) -> bool:
        return bool(self.settings.options.get("enable_tools", True))

    def classify_error(self, message: str) -> Verdict:
        # xAI reports exhausted credits as a 403, which is not a credential problem
        if _QUOTA_PATTERN.search(message):
            return Verdict.ERROR_SERVICE
        return super().classify_error(message)

    async def _complete(self, prompt: str) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_output_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
            "store": False,
            "input": [
                {"role": "developer", "content": self.SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if self.tools_enabled:
            payload["tools"] = [{"type": "web_search"}, {"type": "code_interpreter"}]

        body = await self._post_json(
            f"{self.base_url}/responses",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        content = extract_response_text(body)
        if not content.strip():
            raise ProviderAbstainedError("Empty response from API", "No content in API response")
        return content


def extract_response_text(body: dict[str, Any]) -> str:
    """Find the assistant text in a Responses API (or chat-style) body."""
    output = body.get("output")
    if isinstance(output, list):
        for item in output:
            if not isinstance(item, dict) or item.get("type") != "message":
                continue
            for part in item.get("content") or []:
                if isinstance(part, dict) and part.get("type") == "output_text":
                    return part.get("text", "")
    if isinstance(output, str):
        return output

    choices = body.get("choices")
    if isinstance(choices, list) and choices:
        return (choices[0].get("message") or {}).get("content") or ""
    return ""
