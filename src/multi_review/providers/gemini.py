"""Google Gemini review provider."""

from multi_review.providers.base import ProviderAbstainedError, ReviewProvider


class GeminiProvider(ReviewProvider):
    """Provider backed by the Gemini generateContent API.

    Accepts either GEMINI_API_KEY or GOOGLE_API_KEY. Responses stopped by the
    safety filters are treated as an abstention, not a failure.
    """

    NAME = "gemini"
    KIND = "cloud"
    DEFAULT_MODEL = "gemini-2.5-pro"
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
    CLOSING_INSTRUCTION = (
        "Please provide your review as a JSON object. "
        "Respond ONLY with valid JSON, no additional text."
    )

    async def _complete(self, prompt: str) -> str:
        body = await self._post_json(
            f"{self.base_url}/models/{self.model}:generateContent",
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "maxOutputTokens": self.settings.max_tokens,
                    "temperature": self.settings.temperature,
                },
            },
            headers={"x-goog-api-key": self.api_key},
        )

        candidates = body.get("candidates") or [{}]
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

        if not text.strip():
            if candidate.get("finishReason") == "SAFETY":
                raise ProviderAbstainedError(
                    "Response blocked by safety filters", "Safety filter triggered"
                )
            raise ProviderAbstainedError("Empty response from API", "No content in API response")
        return text
