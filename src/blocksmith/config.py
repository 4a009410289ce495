"""Settings loaded from YAML with environment overrides."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from blocksmith.constants import (
    DEFAULT_EMPTY_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_VALIDATION_RETRIES,
    MAX_REQUEST_TIMEOUT,
    MAX_RETRIES,
    MIN_REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/providers.yaml")
SUPPORTED_PROVIDERS = ("openai", "gemini", "openrouter")
ENV_PREFIX = "BLOCKSMITH_"
SHARED_API_KEY_ENV = ENV_PREFIX + "API_KEY"

BUILTIN_CONFIG: dict[str, Any] = {
    "generation": {"default_provider": "openai"},
    "providers": {
        "openai": {
            "api_key_env": "BLOCKSMITH_OPENAI_API_KEY",
            "model_env": "BLOCKSMITH_OPENAI_MODEL",
            "default_model": "gpt-4o-mini",
        },
        "gemini": {
            "api_key_env": "BLOCKSMITH_GEMINI_API_KEY",
            "model_env": "BLOCKSMITH_GEMINI_MODEL",
            "default_model": "gemini-2.5-flash",
            "supports_system_prompt": False,
        },
        "openrouter": {
            "api_key_env": "BLOCKSMITH_OPENROUTER_API_KEY",
            "model_env": "BLOCKSMITH_OPENROUTER_MODEL",
            "default_model": "openrouter/auto",
            "base_url": "https://openrouter.ai/api/v1",
        },
    },
}


class ProviderConfig(BaseModel):
    """Connection and sampling settings for one provider."""

    api_key_env: Optional[str] = None
    model_env: Optional[str] = None
    default_model: str
    base_url: Optional[str] = None
    max_tokens: int = 3072
    temperature: Optional[float] = 0.1
    allowed_models: list[str] = Field(default_factory=list)
    supports_system_prompt: bool = True


class GenerationSettings(BaseModel):
    """Retry budgets and request limits for the orchestrator."""

    default_provider: str = "openai"
    enabled_providers: list[str] = Field(default_factory=list)
    request_timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, ge=MIN_REQUEST_TIMEOUT, le=MAX_REQUEST_TIMEOUT)
    empty_retries: int = Field(DEFAULT_EMPTY_RETRIES, ge=0, le=MAX_RETRIES)
    validation_retries: int = Field(DEFAULT_VALIDATION_RETRIES, ge=0, le=MAX_RETRIES)
    max_current_code_chars: int = Field(0, ge=0)


class Settings(BaseModel):
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)


def parse_csv(value: Optional[str]) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _env_number(name: str, fallback, low, high, cast=int):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid value for %s: %r", name, raw)
        return fallback
    return min(high, max(low, value))


def _apply_env(settings: Settings) -> Settings:
    generation = settings.generation

    requested = [name.lower() for name in parse_csv(os.getenv(ENV_PREFIX + "ENABLED_PROVIDERS"))]
    candidates = requested or generation.enabled_providers or list(settings.providers)
    enabled = []
    for name in candidates:
        if name in SUPPORTED_PROVIDERS and name in settings.providers and name not in enabled:
            enabled.append(name)
    if not enabled:
        raise ValueError(f"No supported providers enabled. Configure {ENV_PREFIX}ENABLED_PROVIDERS.")
    generation.enabled_providers = enabled

    default_provider = (os.getenv(ENV_PREFIX + "PROVIDER") or generation.default_provider).strip().lower()
    generation.default_provider = default_provider if default_provider in enabled else enabled[0]

    generation.request_timeout = _env_number(
        ENV_PREFIX + "REQUEST_TIMEOUT", generation.request_timeout, MIN_REQUEST_TIMEOUT, MAX_REQUEST_TIMEOUT, float
    )
    generation.empty_retries = _env_number(ENV_PREFIX + "EMPTY_RETRIES", generation.empty_retries, 0, MAX_RETRIES)
    generation.validation_retries = _env_number(ENV_PREFIX + "VALIDATION_RETRIES", generation.validation_retries, 0, MAX_RETRIES)
    generation.max_current_code_chars = _env_number(
        ENV_PREFIX + "MAX_CURRENT_CODE_CHARS", generation.max_current_code_chars, 0, 10**7
    )

    shared_model = os.getenv(ENV_PREFIX + "MODEL")
    for name, provider in settings.providers.items():
        key = ENV_PREFIX + name.upper()
        provider.default_model = os.getenv(provider.model_env or key + "_MODEL") or shared_model or provider.default_model
        allowed = parse_csv(os.getenv(key + "_ALLOWED_MODELS"))
        if allowed:
            provider.allowed_models = allowed
    return settings


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from ``config_path`` (or the default location) and apply env overrides.

    An explicitly given path must exist; when the default file is absent the
    built-in provider table is used instead.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if path.exists():
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
    elif config_path is not None:
        raise FileNotFoundError(f"Provider config file not found: {config_path}")
    else:
        logger.debug("No config file at %s; using built-in provider table", path)
        data = BUILTIN_CONFIG

    settings = Settings(
        generation=GenerationSettings(**(data.get("generation") or {})),
        providers={name: ProviderConfig(**values) for name, values in (data.get("providers") or {}).items()},
    )
    return _apply_env(settings)
