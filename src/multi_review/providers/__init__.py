"""Review providers for multi-provider code review."""

from multi_review.providers.anthropic import AnthropicProvider
from multi_review.providers.base import (
    ProviderAbstainedError,
    ProviderCallError,
    RetryPolicy,
    ReviewProvider,
)
from multi_review.providers.bedrock import BedrockProvider
from multi_review.providers.gemini import GeminiProvider
from multi_review.providers.local import CliAgentProvider, OllamaProvider
from multi_review.providers.openai import OpenAIProvider
from multi_review.providers.registry import (
    BUILTIN_PROVIDERS,
    ProviderNotFoundError,
    ProviderRegistry,
    build_registry,
)
from multi_review.providers.xai import XAIProvider

__all__ = [
    "AnthropicProvider",
    "BUILTIN_PROVIDERS",
    "BedrockProvider",
    "CliAgentProvider",
    "GeminiProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderAbstainedError",
    "ProviderCallError",
    "ProviderNotFoundError",
    "ProviderRegistry",
    "RetryPolicy",
    "ReviewProvider",
    "XAIProvider",
    "build_registry",
]
