"""Local review providers: Ollama and a custom CLI agent.

Local providers need no credentials but are disabled unless configuration
enables them.
"""

import asyncio
import contextlib
import logging
import os
import shlex

import httpx

from multi_review.models.review import Verdict
from multi_review.providers.base import (
    ProviderAbstainedError,
    ProviderCallError,
    ReviewProvider,
)

logger = logging.getLogger(__name__)

OLLAMA_HEALTH_TIMEOUT = 3


class OllamaProvider(ReviewProvider):
    """Provider backed by a local Ollama server."""

    NAME = "ollama"
    KIND = "local"
    DEFAULT_MODEL = "codellama:latest"
    DEFAULT_BASE_URL = "http://localhost:11434"
    CLOSING_INSTRUCTION = (
        "Please provide your review as a JSON object. "
        "Respond ONLY with valid JSON, no additional text."
    )

    async def list_models(self) -> list[str]:
        """Names of the models the server has pulled."""
        response = await self.client.get(
            f"{self.base_url}/api/tags", timeout=OLLAMA_HEALTH_TIMEOUT
        )
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    async def is_reachable(self) -> bool:
        try:
            await self.list_models()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Ollama not reachable at {self.base_url}: {e!r}")
            return False
        return True

    async def _complete(self, prompt: str) -> str:
        if not await self.is_reachable():
            raise ProviderAbstainedError(
                "Ollama not available", f"Cannot connect to Ollama at {self.base_url}"
            )

        body = await self._post_json(
            f"{self.base_url}/api/generate",
            {
                "model": self.model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "num_predict": self.settings.max_tokens,
                    "temperature": self.settings.temperature,
                },
                "format": "json",
            },
        )

        content = body.get("response") or ""
        if not content.strip():
            raise ProviderAbstainedError("Empty response from Ollama", "No response content")
        return content


class CliAgentProvider(ReviewProvider):
    """Provider that pipes the prompt into a local executable.

    The command comes from ``options.command`` (SA_LOCAL_AGENT) and extra
    arguments from ``options.args`` (SA_LOCAL_ARGS). The executable must
    print its review to stdout.
    """

    NAME = "cli_agent"
    KIND = "local"
    DEFAULT_MODEL = "cli_agent"

    @property
    def command(self) -> str:
        return str(self.settings.options.get("command") or "")

    @property
    def args(self) -> list[str]:
        return shlex.split(str(self.settings.options.get("args") or ""))

    def is_configured(self) -> bool:
        return bool(self.command) and os.access(self.command, os.X_OK)

    def missing_configuration(self) -> str:
        if not self.command:
            return "SA_LOCAL_AGENT environment variable not set"
        return f"Agent at {self.command} is not executable"

    def classify_error(self, message: str) -> Verdict:
        # Exit codes and agent output are not HTTP errors; only timeouts are special
        if "timed out" in message.lower():
            return Verdict.ERROR_TIMEOUT
        return Verdict.ERROR_SERVICE

    async def _complete(self, prompt: str) -> str:
        process = await asyncio.create_subprocess_exec(
            self.command,
            *self.args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            stdout, _ = await process.communicate(prompt.encode())
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            raise

        output = stdout.decode(errors="replace")
        if process.returncode != 0:
            raise ProviderCallError(
                f"Agent exited with code {process.returncode}: {output[:200]}"
            )
        return output
