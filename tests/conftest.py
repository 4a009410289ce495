import sys
from pathlib import Path
from typing import Optional

import pytest

# Add src directory to Python path
src_path = str(Path(__file__).parent.parent / "src")
if src_path not in sys.path:
    sys.path.append(src_path)

from blocksmith.gateway import CancelToken, ProviderGateway


class ScriptedGateway(ProviderGateway):
    """Gateway that replays canned responses and records every call."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def call(self, provider, model, system_prompt, user_prompt, timeout, cancel_token: Optional[CancelToken] = None) -> str:
        self.calls.append(
            {
                "provider": provider,
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "timeout": timeout,
                "cancel_token": cancel_token,
            }
        )
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(cancel_token)
        return response


class FakeClock:
    def __init__(self, step: float = 0.5):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def scripted_gateway():
    """Factory for gateways that replay the given responses in order."""
    return ScriptedGateway


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def compliant_code():
    return "\n".join(
        [
            "let count = 0",
            "input.onButtonPressed(Button.A, function () {",
            "    count += 1",
            "    basic.showNumber(count)",
            "})",
        ]
    )
