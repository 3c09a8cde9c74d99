"""OpenAI ChatGPT review provider."""

from multi_review.providers.base import ProviderAbstainedError, ReviewProvider


class OpenAIProvider(ReviewProvider):
    """Provider backed by the OpenAI Chat Completions API."""

    NAME = "openai"
    KIND = "cloud"
    DEFAULT_MODEL = "gpt-4-turbo"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    KEY_VARS = ("OPENAI_API_KEY",)

    async def _complete(self, prompt: str) -> str:
        body = await self._post_json(
            f"{self.base_url}/chat/completions",
            {
                "model": self.model,
                "max_tokens": self.settings.max_tokens,
                "temperature": self.settings.temperature,
                "response_format": {"type": "json_object"},
                "messages": [
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        choices = body.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        if not content.strip():
            raise ProviderAbstainedError("Empty response from API", "No content in API response")
        return content
