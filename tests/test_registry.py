"""Tests for the provider registry."""

import pytest


class TestProviderRegistry:
    """Tests for ProviderRegistry and build_registry."""

    def test_cloud_providers_enabled_by_credentials(self):
        from multi_review.config import Config
        from multi_review.providers.registry import build_registry

        registry = build_registry(
            Config(), environ={"ANTHROPIC_API_KEY": "a", "GOOGLE_API_KEY": "g"}
        )

        assert registry.enabled() == frozenset({"anthropic", "gemini"})
        assert registry.names() == [
            "anthropic", "bedrock", "cli_agent", "gemini", "ollama", "openai", "xai"
        ]

    def test_local_providers_need_config(self):
        from multi_review.config import Config, ProviderSettings
        from multi_review.providers.registry import build_registry

        config = Config(providers={"ollama": ProviderSettings(enabled=True)})
        registry = build_registry(config, environ={})

        assert registry.enabled() == frozenset({"ollama"})

    def test_explicitly_disabled_cloud_provider(self):
        from multi_review.config import Config, ProviderSettings
        from multi_review.providers.registry import build_registry

        config = Config(providers={"openai": ProviderSettings(enabled=False)})
        registry = build_registry(config, environ={"OPENAI_API_KEY": "o"})

        assert not registry.is_enabled("openai")

    def test_cli_agent_without_command_not_enabled(self):
        from multi_review.config import Config, ProviderSettings
        from multi_review.providers.registry import build_registry

        config = Config(providers={"cli_agent": ProviderSettings(enabled=True)})
        registry = build_registry(config, environ={})

        assert not registry.is_enabled("cli_agent")
        assert registry.info("cli_agent")["configured"] is False

    def test_register_is_idempotent(self):
        from multi_review.providers.anthropic import AnthropicProvider
        from multi_review.providers.registry import ProviderRegistry

        registry = ProviderRegistry()
        provider = AnthropicProvider(environ={"ANTHROPIC_API_KEY": "a"})
        registry.register(provider)
        registry.register(provider)

        assert registry.names() == ["anthropic"]
        assert registry.resolve("anthropic") is provider

    def test_resolve_unknown(self):
        from multi_review.providers.registry import ProviderNotFoundError, ProviderRegistry

        with pytest.raises(ProviderNotFoundError):
            ProviderRegistry().resolve("mistral")

    def test_info(self):
        from multi_review.config import Config
        from multi_review.providers.registry import build_registry

        registry = build_registry(Config(), environ={"XAI_API_KEY": "x"})
        info = registry.info("xai")

        assert info == {
            "name": "xai",
            "type": "cloud",
            "model": "grok-4-fast-non-reasoning",
            "enabled": True,
            "configured": True,
        }
