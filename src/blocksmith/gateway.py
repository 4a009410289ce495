"""Provider gateway: the only place that talks to a text-generation provider."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from blocksmith.components.models import ModelRegistry
from blocksmith.constants import CANCEL_POLL_INTERVAL

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a provider call fails: network error, non-success reply or bad configuration."""

    pass


class ProviderTimeout(TransportError):
    """Raised when a provider call exceeds its timeout."""

    pass


class ProviderConfigurationError(TransportError):
    """Raised when the requested provider or model cannot be used."""

    pass


class GenerationCancelled(Exception):
    """Raised when the caller cancels a generation mid-call."""

    pass


class CancelToken:
    """Thread-safe cancellation flag shared between a caller and one generation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled("Generation cancelled by caller")


class ProviderGateway(ABC):
    """Call contract every provider transport implements."""

    @abstractmethod
    def call(
        self,
        provider: Optional[str],
        model: Optional[str],
        system_prompt: str,
        user_prompt: str,
        timeout: float,
        cancel_token: Optional[CancelToken] = None,
    ) -> str:
        """Send one prompt pair and return the raw response text.

        Raises:
            ProviderTimeout: the call took longer than ``timeout`` seconds
            GenerationCancelled: ``cancel_token`` fired during the call
            TransportError: any other provider failure
        """
        pass


def _is_timeout(error: BaseException) -> bool:
    return isinstance(error, TimeoutError) or "Timeout" in type(error).__name__


class LangChainGateway(ProviderGateway):
    """Gateway backed by LangChain chat models from the registry."""

    def __init__(self, model_registry: ModelRegistry, poll_interval: float = CANCEL_POLL_INTERVAL):
        self.model_registry = model_registry
        self.poll_interval = poll_interval

    def _build_messages(self, provider: str, system_prompt: str, user_prompt: str) -> list[BaseMessage]:
        if self.model_registry.get_config(provider).supports_system_prompt:
            return [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        return [HumanMessage(content=system_prompt + "\n\n" + user_prompt)]

    def _invoke(self, model: BaseChatModel, messages: list[BaseMessage], timeout: float, cancel_token: CancelToken) -> Any:
        """Run ``model.invoke`` on a worker thread so cancellation and the deadline can cut the wait short."""
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(model.invoke, messages)
        deadline = time.monotonic() + timeout
        try:
            while True:
                if cancel_token.cancelled:
                    future.cancel()
                    raise GenerationCancelled("Generation cancelled by caller")
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    future.cancel()
                    raise ProviderTimeout(f"Generation timed out after {timeout:g}s")
                done, _ = wait([future], timeout=min(self.poll_interval, remaining))
                if not done:
                    continue
                try:
                    return future.result()
                except Exception as e:
                    if _is_timeout(e):
                        raise ProviderTimeout(f"Generation timed out after {timeout:g}s") from e
                    raise TransportError(f"Provider error: {e}") from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def call(
        self,
        provider: Optional[str],
        model: Optional[str],
        system_prompt: str,
        user_prompt: str,
        timeout: float,
        cancel_token: Optional[CancelToken] = None,
    ) -> str:
        cancel_token = cancel_token or CancelToken()
        cancel_token.raise_if_cancelled()
        try:
            selection = self.model_registry.resolve(provider, model)
            strategy = self.model_registry.get_strategy(selection.provider)
        except ValueError as e:
            raise ProviderConfigurationError(str(e)) from e

        messages = self._build_messages(selection.provider, system_prompt, user_prompt)
        last_error: Optional[TransportError] = None
        for model_id in strategy.candidate_models(selection.model):
            try:
                chat_model = self.model_registry.get_model(selection, model_id, timeout)
            except Exception as e:
                raise ProviderConfigurationError(f"Cannot build {selection.provider} model {model_id}: {e}") from e
            try:
                reply = self._invoke(chat_model, messages, timeout, cancel_token)
            except TransportError as e:
                logger.warning("%s model %s failed: %s", selection.provider, model_id, e)
                last_error = e
                continue
            text = strategy.extract_text(reply)
            if text.strip():
                return text
            last_error = None
            logger.warning("%s model %s returned no text", selection.provider, model_id)

        if last_error is not None:
            raise last_error
        return ""
