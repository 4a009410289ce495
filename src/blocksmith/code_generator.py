"""Bounded-retry generation of block-safe code."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from blocksmith.components.types import (
    GenerationOutcome,
    GenerationRequest,
    ParsedOutput,
    RetryBudgets,
    TargetProfile,
    ValidationResult,
)
from blocksmith.config import Settings
from blocksmith.constants import (
    DEFAULT_FEEDBACK,
    DEFAULT_REQUEST_TIMEOUT,
    EMPTY_CODE_FEEDBACK,
    UNKNOWN_VIOLATION,
    VALIDATION_FALLBACK_PREFIX,
)
from blocksmith.extractor import extract, normalise_feedback
from blocksmith.gateway import CancelToken, ProviderGateway
from blocksmith.prompts import (
    empty_retry_suffix,
    system_prompt_for,
    user_prompt_for,
    validation_retry_suffix,
    with_suffix,
)
from blocksmith.targets import stub_for_target
from blocksmith.validator import validate

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class Attempt:
    """Parsed output of one provider round trip."""

    parsed: ParsedOutput
    validation: Optional[ValidationResult] = None

    @property
    def has_code(self) -> bool:
        return bool(self.parsed.code.strip())

    @property
    def compliant(self) -> bool:
        return self.validation is not None and self.validation.compliant


@dataclass
class _Generation:
    """Per-call state; nothing here outlives one ``generate`` call."""

    request: GenerationRequest
    system_prompt: str
    user_prompt: str
    cancel_token: CancelToken
    calls: int = 0
    feedback: list[str] = field(default_factory=list)


class CodeGeneratorAgent:
    """Drives a provider until it returns block-safe code, or substitutes a fallback stub.

    The gateway, retry budgets, clock and per-call timeout are injected; the
    agent itself holds no state between calls, so one instance can serve
    concurrent callers.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        budgets: Optional[RetryBudgets] = None,
        clock: Clock = time.monotonic,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_current_code_chars: int = 0,
        default_provider: Optional[str] = None,
        default_model: Optional[str] = None,
    ):
        self.gateway = gateway
        self.budgets = budgets or RetryBudgets()
        self.clock = clock
        self.timeout = timeout
        self.max_current_code_chars = max_current_code_chars
        self.default_provider = default_provider
        self.default_model = default_model

    @classmethod
    def from_settings(cls, settings: Settings, gateway: ProviderGateway, clock: Clock = time.monotonic) -> "CodeGeneratorAgent":
        generation = settings.generation
        return cls(
            gateway=gateway,
            budgets=RetryBudgets(empty_retries=generation.empty_retries, validation_retries=generation.validation_retries),
            clock=clock,
            timeout=generation.request_timeout,
            max_current_code_chars=generation.max_current_code_chars,
            default_provider=generation.default_provider,
        )

    def _attempt(self, state: _Generation, suffix: str, phase: str) -> Attempt:
        state.cancel_token.raise_if_cancelled()
        request = state.request
        started = self.clock()
        raw = self.gateway.call(
            request.provider_override or self.default_provider,
            request.model_override or self.default_model,
            with_suffix(state.system_prompt, suffix),
            state.user_prompt,
            self.timeout,
            state.cancel_token,
        )
        state.calls += 1

        parsed = extract(raw)
        state.feedback.extend(parsed.feedback)
        attempt = Attempt(parsed=parsed)
        if attempt.has_code:
            attempt.validation = validate(parsed.code, request.target)

        logger.info(
            "Attempt %d (%s) for %s finished in %.2fs: %s",
            state.calls,
            phase,
            request.target.value,
            self.clock() - started,
            "no code" if not attempt.has_code else ("compliant" if attempt.compliant else ", ".join(attempt.validation.violations)),
        )
        return attempt

    def generate(self, request: GenerationRequest, cancel_token: Optional[CancelToken] = None) -> GenerationOutcome:
        """Generate block-safe code for ``request``.

        Only transport failures and cancellation propagate; every other
        problem resolves to a fallback stub with an explanatory note.

        Raises:
            TransportError: a provider call failed or timed out
            GenerationCancelled: ``cancel_token`` fired
        """
        state = _Generation(
            request=request,
            system_prompt=system_prompt_for(request.target),
            user_prompt=user_prompt_for(request, self.max_current_code_chars),
            cancel_token=cancel_token or CancelToken(),
        )
        started = self.clock()

        result = self._attempt(state, "", "initial")

        empty_budget = self.budgets.empty_retries
        while not result.has_code and empty_budget > 0:
            empty_budget -= 1
            result = self._attempt(state, empty_retry_suffix(), "empty retry")

        validation_budget = self.budgets.validation_retries
        retry_index = 0
        while result.has_code and not result.compliant and validation_budget > 0:
            validation_budget -= 1
            result = self._attempt(state, validation_retry_suffix(result.validation.violations, retry_index), "validation retry")
            retry_index += 1

        outcome = self._resolve(state, result)
        logger.info("Generation for %s finished after %d call(s) in %.2fs", request.target.value, state.calls, self.clock() - started)
        return outcome

    def _resolve(self, state: _Generation, result: Attempt) -> GenerationOutcome:
        target: TargetProfile = state.request.target
        if not result.has_code:
            logger.warning("No code after %d call(s); substituting %s stub", state.calls, target.value)
            return GenerationOutcome(
                code=stub_for_target(target),
                feedback=normalise_feedback(state.feedback + [EMPTY_CODE_FEEDBACK], DEFAULT_FEEDBACK),
            )

        if not result.compliant:
            violations = result.validation.violations if result.validation else []
            logger.warning("Code still not block-safe (%s); substituting %s stub", ", ".join(violations), target.value)
            note = VALIDATION_FALLBACK_PREFIX + (", ".join(violations) or UNKNOWN_VIOLATION)
            return GenerationOutcome(
                code=stub_for_target(target),
                feedback=normalise_feedback(state.feedback + [note], DEFAULT_FEEDBACK),
            )

        return GenerationOutcome(code=result.parsed.code, feedback=normalise_feedback(state.feedback, DEFAULT_FEEDBACK))


def generate(
    request: GenerationRequest,
    gateway: ProviderGateway,
    budgets: Optional[RetryBudgets] = None,
    clock: Clock = time.monotonic,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    cancel_token: Optional[CancelToken] = None,
) -> GenerationOutcome:
    """Run one generation with a throwaway agent."""
    agent = CodeGeneratorAgent(gateway=gateway, budgets=budgets, clock=clock, timeout=timeout)
    return agent.generate(request, cancel_token=cancel_token)
