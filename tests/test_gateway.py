import os
import threading
from unittest.mock import Mock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from blocksmith.components.models import ModelRegistry
from blocksmith.config import BUILTIN_CONFIG, ENV_PREFIX, GenerationSettings, ProviderConfig, Settings
from blocksmith.gateway import (
    CancelToken,
    GenerationCancelled,
    LangChainGateway,
    ProviderConfigurationError,
    ProviderTimeout,
    TransportError,
)


class APITimeoutError(Exception):
    pass


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.setenv("BLOCKSMITH_API_KEY", "test-key")


@pytest.fixture
def registry():
    settings = Settings(
        generation=GenerationSettings(default_provider="openai", enabled_providers=["openai", "gemini", "openrouter"]),
        providers={name: ProviderConfig(**values) for name, values in BUILTIN_CONFIG["providers"].items()},
    )
    return ModelRegistry(settings)


def install_models(monkeypatch, registry, models):
    """Route get_model to the given {model_id: chat model} mapping."""
    requested = []

    def get_model(selection, model_id, timeout):
        requested.append(model_id)
        return models[model_id]

    monkeypatch.setattr(registry, "get_model", get_model)
    return requested


def replying(text):
    return Mock(invoke=Mock(return_value=AIMessage(content=text)))


def failing(error):
    return Mock(invoke=Mock(side_effect=error))


def test_call_returns_reply_text(monkeypatch, registry):
    model = replying('{"feedback":[],"code":"let x = 0"}')
    install_models(monkeypatch, registry, {"gpt-4o-mini": model})
    gateway = LangChainGateway(registry, poll_interval=0.01)

    text = gateway.call(None, None, "system", "user", timeout=5)

    assert text == '{"feedback":[],"code":"let x = 0"}'
    messages = model.invoke.call_args[0][0]
    assert isinstance(messages[0], SystemMessage)
    assert messages[0].content == "system"
    assert isinstance(messages[1], HumanMessage)
    assert messages[1].content == "user"


def test_provider_without_system_prompt_gets_one_message(monkeypatch, registry):
    model = replying("ok")
    install_models(monkeypatch, registry, {"gemini-2.5-flash": model})
    LangChainGateway(registry, poll_interval=0.01).call("gemini", None, "system", "user", timeout=5)

    messages = model.invoke.call_args[0][0]
    assert len(messages) == 1
    assert messages[0].content == "system\n\nuser"


def test_provider_error_becomes_transport_error(monkeypatch, registry):
    install_models(monkeypatch, registry, {"gpt-4o-mini": failing(RuntimeError("HTTP 503"))})
    with pytest.raises(TransportError, match="HTTP 503"):
        LangChainGateway(registry, poll_interval=0.01).call("openai", None, "s", "u", timeout=5)


@pytest.mark.parametrize("error", [TimeoutError("slow"), APITimeoutError("slow")])
def test_client_timeout_becomes_provider_timeout(monkeypatch, registry, error):
    install_models(monkeypatch, registry, {"gpt-4o-mini": failing(error)})
    with pytest.raises(ProviderTimeout):
        LangChainGateway(registry, poll_interval=0.01).call("openai", None, "s", "u", timeout=5)


def test_deadline_cuts_slow_call_short(monkeypatch, registry):
    release = threading.Event()

    def slow_invoke(messages):
        release.wait(2)
        return AIMessage(content="too late")

    install_models(monkeypatch, registry, {"gpt-4o-mini": Mock(invoke=slow_invoke)})
    try:
        with pytest.raises(ProviderTimeout):
            LangChainGateway(registry, poll_interval=0.01).call("openai", None, "s", "u", timeout=0.05)
    finally:
        release.set()


def test_cancel_during_call(monkeypatch, registry):
    token = CancelToken()
    release = threading.Event()

    def cancelling_invoke(messages):
        token.cancel()
        release.wait(2)
        return AIMessage(content="ignored")

    install_models(monkeypatch, registry, {"gpt-4o-mini": Mock(invoke=cancelling_invoke)})
    try:
        with pytest.raises(GenerationCancelled):
            LangChainGateway(registry, poll_interval=0.01).call("openai", None, "s", "u", timeout=5, cancel_token=token)
    finally:
        release.set()


def test_cancelled_token_skips_provider(monkeypatch, registry):
    token = CancelToken()
    token.cancel()
    requested = install_models(monkeypatch, registry, {})
    with pytest.raises(GenerationCancelled):
        LangChainGateway(registry).call("openai", None, "s", "u", timeout=5, cancel_token=token)
    assert requested == []


def test_configuration_errors(registry):
    gateway = LangChainGateway(registry)
    with pytest.raises(ProviderConfigurationError, match="not enabled"):
        gateway.call("anthropic", None, "s", "u", timeout=5)
    assert issubclass(ProviderConfigurationError, TransportError)


def test_missing_key_is_configuration_error(monkeypatch, registry):
    monkeypatch.delenv("BLOCKSMITH_API_KEY")
    with pytest.raises(ProviderConfigurationError, match="Missing API key"):
        LangChainGateway(registry).call("openai", None, "s", "u", timeout=5)


def test_openrouter_falls_back_through_ranked_models(monkeypatch, registry):
    requested = install_models(
        monkeypatch,
        registry,
        {"a/one": failing(RuntimeError("overloaded")), "b/two": replying(""), "c/three": replying("done")},
    )
    text = LangChainGateway(registry, poll_interval=0.01).call("openrouter", "a/one, b/two, c/three", "s", "u", timeout=5)
    assert text == "done"
    assert requested == ["a/one", "b/two", "c/three"]


def test_openrouter_raises_last_error_when_all_fail(monkeypatch, registry):
    install_models(monkeypatch, registry, {"a/one": replying(""), "b/two": failing(RuntimeError("down"))})
    with pytest.raises(TransportError, match="down"):
        LangChainGateway(registry, poll_interval=0.01).call("openrouter", "a/one,b/two", "s", "u", timeout=5)


def test_empty_reply_is_returned_as_empty_text(monkeypatch, registry):
    install_models(monkeypatch, registry, {"gpt-4o-mini": replying("   ")})
    assert LangChainGateway(registry, poll_interval=0.01).call("openai", None, "s", "u", timeout=5) == ""


def test_openrouter_moves_on_after_a_slow_model(monkeypatch, registry):
    release = threading.Event()

    def hanging_invoke(messages):
        release.wait(2)
        return AIMessage(content="too late")

    install_models(monkeypatch, registry, {"a/one": Mock(invoke=hanging_invoke), "b/two": replying("done")})
    try:
        text = LangChainGateway(registry, poll_interval=0.01).call("openrouter", "a/one,b/two", "s", "u", timeout=0.05)
    finally:
        release.set()
    assert text == "done"


def test_openrouter_last_model_timeout_is_raised(monkeypatch, registry):
    install_models(monkeypatch, registry, {"a/one": replying(""), "b/two": failing(TimeoutError("slow"))})
    with pytest.raises(ProviderTimeout):
        LangChainGateway(registry, poll_interval=0.01).call("openrouter", "a/one,b/two", "s", "u", timeout=5)


def test_model_construction_error_is_configuration_error(monkeypatch, registry):
    def get_model(selection, model_id, timeout):
        raise ValueError("bad base_url")

    monkeypatch.setattr(registry, "get_model", get_model)
    with pytest.raises(ProviderConfigurationError, match="bad base_url"):
        LangChainGateway(registry).call("openai", None, "s", "u", timeout=5)
