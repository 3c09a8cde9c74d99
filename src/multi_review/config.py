"""Configuration loading and validation for multi-provider review."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("~/.sa-review-agents.yaml")
FALLBACK_CONFIG_PATH = Path("review-config.yaml")


class ConfigError(Exception):
    """Raised when configuration values cannot be used."""

    pass


@dataclass
class ProviderSettings:
    """Configuration for a single provider.

    ``None`` means "use the provider's own default".
    """

    enabled: bool | None = None
    model: str | None = None
    max_tokens: int = 16384
    temperature: float = 0.3
    timeout_seconds: float | None = None
    base_url: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class DispatcherSettings:
    """Dispatcher configuration."""

    timeout_seconds: float = 120
    max_diff_chars: int = 100_000


@dataclass
class RetrySettings:
    """Rate-limit retry configuration."""

    max_attempts: int = 3
    base_delay_seconds: float = 2


@dataclass
class ConsensusSettings:
    """Consensus configuration."""

    threshold: float = 0.6


@dataclass
class Config:
    """Complete application configuration."""

    providers: dict[str, ProviderSettings] = field(default_factory=dict)
    dispatcher: DispatcherSettings = field(default_factory=DispatcherSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    consensus: ConsensusSettings = field(default_factory=ConsensusSettings)

    def provider(self, name: str) -> ProviderSettings:
        """Settings for a provider, created empty if not configured."""
        return self.providers.setdefault(name, ProviderSettings())


# Environment variables that override a provider's model, first match wins
_MODEL_ENV_VARS = {
    "anthropic": ("ANTHROPIC_MODEL",),
    "openai": ("OPENAI_MODEL",),
    "gemini": ("GEMINI_MODEL", "GOOGLE_MODEL"),
    "xai": ("XAI_MODEL", "GROK_MODEL"),
    "bedrock": ("BEDROCK_MODEL",),
    "ollama": ("OLLAMA_MODEL",),
}

_MAX_TOKENS_ENV_VARS = {
    "anthropic": ("ANTHROPIC_MAX_TOKENS",),
    "openai": ("OPENAI_MAX_TOKENS",),
    "gemini": ("GEMINI_MAX_TOKENS", "GOOGLE_MAX_TOKENS"),
    "xai": ("XAI_MAX_TOKENS",),
    "bedrock": ("BEDROCK_MAX_TOKENS",),
    "ollama": ("OLLAMA_MAX_TOKENS",),
}


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file (default: $SA_REVIEW_CONFIG,
            then ~/.sa-review-agents.yaml, then review-config.yaml)
        environ: Environment mapping (default: os.environ)

    Returns:
        Loaded configuration

    Raises:
        ConfigError: If the file is not valid YAML or a value has the wrong type
    """
    env = os.environ if environ is None else environ

    if config_path is None:
        config_path = _default_config_path(env)

    raw_config: dict[str, Any] = {}
    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            try:
                raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(raw_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

    raw_config = _expand_env_vars(raw_config, env)

    try:
        config = _parse_config(raw_config)
        _apply_env_overrides(config, env)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    return config


def _default_config_path(env: Mapping[str, str]) -> Path | None:
    if env.get("SA_REVIEW_CONFIG"):
        return Path(env["SA_REVIEW_CONFIG"]).expanduser()
    for candidate in (DEFAULT_CONFIG_PATH.expanduser(), FALLBACK_CONFIG_PATH):
        if candidate.exists():
            return candidate
    return None


def _expand_env_vars(obj: Any, env: Mapping[str, str]) -> Any:
    """Recursively expand environment variables in config."""
    if isinstance(obj, str):
        if obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            return env.get(env_var, "")
        return obj
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v, env) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v, env) for v in obj]
    return obj


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw config dict into Config object."""
    providers = {}
    for name, provider_raw in (raw.get("providers") or {}).items():
        provider_raw = provider_raw or {}
        known = {"enabled", "model", "max_tokens", "temperature", "timeout_seconds", "base_url"}
        timeout = provider_raw.get("timeout_seconds")
        providers[name] = ProviderSettings(
            enabled=_as_bool(provider_raw["enabled"]) if "enabled" in provider_raw else None,
            model=provider_raw.get("model") or None,
            max_tokens=int(provider_raw.get("max_tokens", 16384)),
            temperature=float(provider_raw.get("temperature", 0.3)),
            timeout_seconds=float(timeout) if timeout not in (None, "") else None,
            base_url=provider_raw.get("base_url") or None,
            options={k: v for k, v in provider_raw.items() if k not in known},
        )

    dispatch_raw = raw.get("dispatcher") or {}
    dispatcher = DispatcherSettings(
        timeout_seconds=float(dispatch_raw.get("timeout_seconds", 120)),
        max_diff_chars=int(dispatch_raw.get("max_diff_chars", 100_000)),
    )

    retry_raw = raw.get("retry") or {}
    retry = RetrySettings(
        max_attempts=int(retry_raw.get("max_attempts", 3)),
        base_delay_seconds=float(retry_raw.get("base_delay_seconds", 2)),
    )

    consensus_raw = raw.get("consensus") or {}
    consensus = ConsensusSettings(
        threshold=float(consensus_raw.get("threshold", 0.6)),
    )

    return Config(
        providers=providers,
        dispatcher=dispatcher,
        retry=retry,
        consensus=consensus,
    )


def _apply_env_overrides(config: Config, env: Mapping[str, str]) -> None:
    """Apply the environment-style knobs on top of file configuration."""
    if env.get("CONSENSUS_THRESHOLD"):
        config.consensus.threshold = float(env["CONSENSUS_THRESHOLD"])
    if env.get("PROVIDER_TIMEOUT"):
        config.dispatcher.timeout_seconds = float(env["PROVIDER_TIMEOUT"])
    if env.get("MAX_RETRIES"):
        config.retry.max_attempts = int(env["MAX_RETRIES"])
    if env.get("RETRY_DELAY"):
        config.retry.base_delay_seconds = float(env["RETRY_DELAY"])
    if env.get("MAX_DIFF_SIZE"):
        config.dispatcher.max_diff_chars = int(env["MAX_DIFF_SIZE"])

    for name, variables in _MODEL_ENV_VARS.items():
        model = _first_env(env, variables)
        if model:
            config.provider(name).model = model
    for name, variables in _MAX_TOKENS_ENV_VARS.items():
        max_tokens = _first_env(env, variables)
        if max_tokens:
            config.provider(name).max_tokens = int(max_tokens)

    if env.get("OLLAMA_HOST"):
        config.provider("ollama").base_url = env["OLLAMA_HOST"]
    if env.get("OLLAMA_TIMEOUT"):
        config.provider("ollama").timeout_seconds = float(env["OLLAMA_TIMEOUT"])
    if env.get("XAI_ENABLE_TOOLS"):
        config.provider("xai").options["enable_tools"] = _as_bool(env["XAI_ENABLE_TOOLS"])

    if env.get("SA_LOCAL_AGENT"):
        cli_agent = config.provider("cli_agent")
        cli_agent.options["command"] = env["SA_LOCAL_AGENT"]
        cli_agent.options["args"] = env.get("SA_LOCAL_ARGS", "")
        if env.get("SA_LOCAL_TIMEOUT"):
            cli_agent.timeout_seconds = float(env["SA_LOCAL_TIMEOUT"])


def _first_env(env: Mapping[str, str], variables: tuple[str, ...]) -> str | None:
    for var in variables:
        if env.get(var):
            return env[var]
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "yes", "1", "on")


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not 0.0 < config.consensus.threshold <= 1.0:
        errors.append(
            f"consensus.threshold must be in (0, 1], got {config.consensus.threshold}"
        )

    if config.dispatcher.timeout_seconds <= 0:
        errors.append(
            f"dispatcher.timeout_seconds must be positive, got {config.dispatcher.timeout_seconds}"
        )

    if config.dispatcher.max_diff_chars < 1000:
        errors.append(
            f"dispatcher.max_diff_chars must be at least 1000, got {config.dispatcher.max_diff_chars}"
        )

    if config.retry.max_attempts < 1:
        errors.append(f"retry.max_attempts must be at least 1, got {config.retry.max_attempts}")

    if config.retry.base_delay_seconds < 0:
        errors.append(
            f"retry.base_delay_seconds must not be negative, got {config.retry.base_delay_seconds}"
        )

    for name, settings in config.providers.items():
        if settings.timeout_seconds is not None and settings.timeout_seconds <= 0:
            errors.append(f"providers.{name}.timeout_seconds must be positive")

    return errors
