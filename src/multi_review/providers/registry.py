"""Provider registry: which providers exist and which are usable."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from multi_review.config import Config
from multi_review.providers.anthropic import AnthropicProvider
from multi_review.providers.base import RetryPolicy, ReviewProvider
from multi_review.providers.bedrock import BedrockProvider
from multi_review.providers.gemini import GeminiProvider
from multi_review.providers.local import CliAgentProvider, OllamaProvider
from multi_review.providers.openai import OpenAIProvider
from multi_review.providers.xai import XAIProvider

logger = logging.getLogger(__name__)

BUILTIN_PROVIDERS: tuple[type[ReviewProvider], ...] = (
    AnthropicProvider,
    OpenAIProvider,
    GeminiProvider,
    XAIProvider,
    BedrockProvider,
    OllamaProvider,
    CliAgentProvider,
)


class ProviderNotFoundError(Exception):
    """Raised when a provider name is not registered."""

    pass


class ProviderRegistry:
    """Lookup table of providers, with the enabled set computed at registration.

    Credentials are checked once when a provider is registered, not on every
    call. Cloud providers without credentials and local providers that are
    not enabled in configuration are registered but not enabled.
    """

    def __init__(self) -> None:
        self._providers: dict[str, ReviewProvider] = {}
        self._enabled: set[str] = set()

    def register(self, provider: ReviewProvider) -> None:
        """Register a provider. Re-registering the same provider is a no-op."""
        name = provider.name
        if self._providers.get(name) is provider:
            return

        self._providers[name] = provider
        self._enabled.discard(name)

        if not provider.enabled_by_config:
            logger.debug(f"Provider {name} registered but disabled")
            return
        if not provider.is_configured():
            logger.warning(f"Provider {name} missing configuration: {provider.missing_configuration()}")
            return

        self._enabled.add(name)
        logger.debug(f"Provider {name} enabled (model: {provider.model})")

    def enabled(self) -> frozenset[str]:
        """Names of providers that are enabled and configured."""
        return frozenset(self._enabled)

    def names(self) -> list[str]:
        """All registered provider names, sorted."""
        return sorted(self._providers)

    def is_enabled(self, name: str) -> bool:
        return name in self._enabled

    def resolve(self, name: str) -> ReviewProvider:
        """Look up a provider by name.

        Raises:
            ProviderNotFoundError: If no provider is registered under ``name``
        """
        try:
            return self._providers[name]
        except KeyError:
            raise ProviderNotFoundError(f"Provider not registered: {name}") from None

    def info(self, name: str) -> dict[str, Any]:
        provider = self.resolve(name)
        info = provider.info()
        info["enabled"] = self.is_enabled(name)
        return info

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


def build_registry(
    config: Config,
    client: httpx.AsyncClient | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProviderRegistry:
    """Register every built-in provider using the given configuration.

    Args:
        config: Loaded configuration
        client: Shared HTTP client for all providers
        environ: Environment for credential lookup (default: os.environ)

    Returns:
        Populated registry
    """
    registry = ProviderRegistry()
    retry = RetryPolicy.from_settings(config.retry)

    for provider_cls in BUILTIN_PROVIDERS:
        registry.register(
            provider_cls(
                settings=config.provider(provider_cls.NAME),
                client=client,
                retry=retry,
                environ=environ,
            )
        )

    logger.debug(f"Initialized {len(registry.enabled())} enabled providers")
    return registry
