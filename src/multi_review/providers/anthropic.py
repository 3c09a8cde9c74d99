"""Anthropic Claude review provider."""

from multi_review.providers.base import ProviderAbstainedError, ReviewProvider

ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicProvider(ReviewProvider):
    """Provider backed by the Anthropic Messages API."""

    NAME = "anthropic"
    KIND = "cloud"
    DEFAULT_MODEL = "claude-opus-4-5-20251101"
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
    KEY_VARS = ("ANTHROPIC_API_KEY",)

    async def _complete(self, prompt: str) -> str:
        # The Messages API takes a single user turn here; the JSON instructions
        # are already part of the prompt.
        body = await self._post_json(
            f"{self.base_url}/messages",
            {
                "model": self.model,
                "max_tokens": self.settings.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_API_VERSION,
                "Content-Type": "application/json",
            },
        )

        blocks = body.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
        if not text.strip():
            raise ProviderAbstainedError("Empty response from API", "No content in API response")
        return text
