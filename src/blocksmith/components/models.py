"""Provider registry: builds LangChain chat models for each supported vendor."""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_google_genai.chat_models import ChatGoogleGenerativeAI
from langchain_openai.chat_models.base import ChatOpenAI
from pydantic import SecretStr

from blocksmith.config import SHARED_API_KEY_ENV, ProviderConfig, Settings, parse_csv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSelection:
    """Provider and model chosen for one generation."""

    provider: str
    model: str
    api_key: SecretStr


class ProviderStrategy(ABC):
    """Abstract base class for provider-specific strategies."""

    @abstractmethod
    def create_model(self, config: ProviderConfig, model_id: str, api_key: SecretStr, timeout: float) -> BaseChatModel:
        """Create a chat model instance for this provider."""
        pass

    def candidate_models(self, model_id: str) -> list[str]:
        """Models to try, in order, for one call."""
        return [model_id]

    def extract_text(self, message: BaseMessage) -> str:
        """Return the text of a model reply."""
        content = message.content
        if isinstance(content, str):
            return content
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("text"):
                parts.append(str(part["text"]))
        return "".join(parts)

    def _get_common_params(self, config: ProviderConfig, model_id: str, timeout: float) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": model_id,
            "max_tokens": config.max_tokens,
            "timeout": timeout,
            "max_retries": 0,
        }
        if config.temperature is not None:
            params["temperature"] = config.temperature
        return params


class OpenAIStrategy(ProviderStrategy):
    def create_model(self, config: ProviderConfig, model_id: str, api_key: SecretStr, timeout: float) -> ChatOpenAI:
        params = self._get_common_params(config, model_id, timeout)
        if config.base_url:
            params["base_url"] = config.base_url
        return ChatOpenAI(api_key=api_key, **params)


class OpenRouterStrategy(OpenAIStrategy):
    """OpenAI-compatible endpoint that accepts a ranked, comma-separated model list."""

    def candidate_models(self, model_id: str) -> list[str]:
        return parse_csv(model_id) or [model_id]


class GeminiStrategy(ProviderStrategy):
    def create_model(
        self, config: ProviderConfig, model_id: str, api_key: SecretStr, timeout: float
    ) -> ChatGoogleGenerativeAI:
        params = self._get_common_params(config, model_id, timeout)
        return ChatGoogleGenerativeAI(api_key=api_key, **params)

    def extract_text(self, message: BaseMessage) -> str:
        metadata = getattr(message, "response_metadata", None) or {}
        finish_reason = str(metadata.get("finish_reason") or "").upper()
        if "BLOCK" in finish_reason:
            logger.warning("Gemini response blocked (finish reason %s)", finish_reason)
            return ""
        feedback = metadata.get("prompt_feedback") or {}
        if isinstance(feedback, dict) and (feedback.get("blocked") or feedback.get("block_reason") not in (None, 0, "", "BLOCK_REASON_UNSPECIFIED")):
            logger.warning("Gemini prompt blocked: %s", feedback)
            return ""
        return super().extract_text(message).strip()


class ModelRegistry:
    """Registry for resolving providers and building their chat models."""

    _PROVIDER_STRATEGIES: dict[str, ProviderStrategy] = {
        "openai": OpenAIStrategy(),
        "gemini": GeminiStrategy(),
        "openrouter": OpenRouterStrategy(),
    }

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def default_provider(self) -> str:
        return self.settings.generation.default_provider

    def get_config(self, provider: str) -> ProviderConfig:
        if provider not in self.settings.providers:
            raise ValueError(f"Provider '{provider}' not found in configuration")
        return self.settings.providers[provider]

    def get_strategy(self, provider: str) -> ProviderStrategy:
        strategy = self._PROVIDER_STRATEGIES.get(provider)
        if not strategy:
            raise ValueError(f"Unsupported provider: {provider}")
        return strategy

    def resolve(self, provider: Optional[str] = None, model: Optional[str] = None) -> ProviderSelection:
        """Pick provider and model, enforcing the enabled list, model allow-list and key presence."""
        name = (provider or self.default_provider).strip().lower()
        if name not in self.settings.generation.enabled_providers:
            raise ValueError(f"Provider '{name}' is not enabled on this server.")

        config = self.get_config(name)
        model_id = (model or config.default_model).strip()
        if config.allowed_models and model_id and model_id not in config.allowed_models:
            raise ValueError(f"Model '{model_id}' is not allowed for provider '{name}'.")

        key = os.getenv(config.api_key_env or "") or os.getenv(SHARED_API_KEY_ENV) or ""
        if not key:
            raise ValueError(f"Missing API key for provider '{name}'. Configure provider key env vars.")
        return ProviderSelection(provider=name, model=model_id, api_key=SecretStr(key))

    def get_model(self, selection: ProviderSelection, model_id: str, timeout: float) -> BaseChatModel:
        """Build a chat model for ``selection`` using ``model_id``."""
        config = self.get_config(selection.provider)
        return self.get_strategy(selection.provider).create_model(config, model_id, selection.api_key, timeout)

    def list_providers(self) -> dict[str, dict[str, Any]]:
        """List enabled providers with their default models."""
        return {
            name: {
                "default_model": self.settings.providers[name].default_model,
                "allowed_models": list(self.settings.providers[name].allowed_models),
                "default": name == self.default_provider,
            }
            for name in self.settings.generation.enabled_providers
        }
