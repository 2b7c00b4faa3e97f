"""
Bounded exponential-backoff retry around single gateway attempts.

Per logical operation the client walks this machine:

    ATTEMPTING -> SUCCEEDED
    ATTEMPTING -> FAILED_TERMINAL           (non-retryable failure)
    ATTEMPTING -> WAITING -> ATTEMPTING     (retryable, budget left)
    ATTEMPTING -> EXHAUSTED                 (retryable, budget spent)

tenacity drives the loop; `RetryState` records where we are so the contract
(bounded attempts, 1s/2s/4s schedule) can be checked without any HTTP.
Each call builds its own state; nothing is shared between operations.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_exponential

from core.logging_config import get_logger
from domain.payment.result import AttemptResult
from infrastructure.external.payments.classifier import ErrorClassifier
from infrastructure.external.payments.transport import TransportResponse


logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
AttemptFn = Callable[[], Awaitable[TransportResponse]]


class RetryPhase(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"
    EXHAUSTED = "exhausted"


_TRANSITIONS: dict[RetryPhase, frozenset[RetryPhase]] = {
    RetryPhase.ATTEMPTING: frozenset({
        RetryPhase.SUCCEEDED,
        RetryPhase.FAILED_TERMINAL,
        RetryPhase.WAITING,
        RetryPhase.EXHAUSTED,
    }),
    RetryPhase.WAITING: frozenset({RetryPhase.ATTEMPTING}),
}


@dataclass
class RetryState:
    max_retries: int
    attempt: int = 0
    phase: RetryPhase = RetryPhase.ATTEMPTING
    next_delay_ms: Optional[int] = None
    delays_ms: list[int] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.phase not in _TRANSITIONS

    @property
    def total_attempts(self) -> int:
        return self.attempt + 1

    def transition(self, phase: RetryPhase) -> None:
        if phase not in _TRANSITIONS.get(self.phase, frozenset()):
            raise RuntimeError(f"illegal retry transition {self.phase.value} -> {phase.value}")
        self.phase = phase

    def schedule(self, delay_ms: int) -> None:
        self.transition(RetryPhase.WAITING)
        self.next_delay_ms = delay_ms
        self.delays_ms.append(delay_ms)

    def resume(self) -> None:
        self.transition(RetryPhase.ATTEMPTING)
        self.attempt += 1
        self.next_delay_ms = None


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 1000

    def delay_ms(self, attempt: int) -> int:
        """Backoff before retry number `attempt + 1` (attempt is 0-based)."""
        return self.base_delay_ms * (2 ** attempt)

    def wait_strategy(self) -> wait_exponential:
        base = self.base_delay_ms / 1000
        return wait_exponential(multiplier=base, exp_base=2, min=0, max=base * (2 ** max(self.max_retries - 1, 0)))


class RetryingClient:
    def __init__(
        self,
        classifier: ErrorClassifier,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.classifier = classifier
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def execute(self, operation: str, attempt_fn: AttemptFn) -> AttemptResult[Any]:
        result, _ = await self.execute_with_state(operation, attempt_fn)
        return result

    async def execute_with_state(
        self, operation: str, attempt_fn: AttemptFn
    ) -> tuple[AttemptResult[Any], RetryState]:
        state = RetryState(max_retries=self.policy.max_retries)

        async def _attempt() -> AttemptResult[Any]:
            response = await attempt_fn()
            if response.ok:
                return AttemptResult.ok(response.data)
            verdict = self.classifier.classify(response.error, operation=operation, attempt=state.total_attempts)
            return AttemptResult.fail(verdict.user_message, error_code=verdict.error_code, retryable=verdict.retryable)

        def _should_retry(result: AttemptResult[Any]) -> bool:
            return not result.success and result.retryable

        def _before_sleep(retry_state: RetryCallState) -> None:
            delay_ms = int(round(retry_state.next_action.sleep * 1000))
            state.schedule(delay_ms)
            logger.warning(
                "payment_gateway_retry_scheduled",
                operation=operation,
                attempt=state.total_attempts,
                max_attempts=self.policy.max_retries + 1,
                delay_ms=delay_ms,
            )

        async def _sleep(seconds: float) -> None:
            await self._sleep(seconds)
            state.resume()

        def _on_exhausted(retry_state: RetryCallState) -> AttemptResult[Any]:
            state.transition(RetryPhase.EXHAUSTED)
            last: AttemptResult[Any] = retry_state.outcome.result()
            # "try again" affordance, distinct from a hard decline
            return last.with_retryable(True)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_retries + 1),
            wait=self.policy.wait_strategy(),
            retry=retry_if_result(_should_retry),
            before_sleep=_before_sleep,
            sleep=_sleep,
            retry_error_callback=_on_exhausted,
            reraise=True,
        )
        result: AttemptResult[Any] = await retrying(_attempt)

        if not state.is_terminal:
            state.transition(RetryPhase.SUCCEEDED if result.success else RetryPhase.FAILED_TERMINAL)

        log = logger.info if result.success else logger.warning
        log(
            "payment_gateway_operation_finished",
            operation=operation,
            phase=state.phase.value,
            attempts=state.total_attempts,
            error_code=result.error_code,
            retryable=result.retryable,
        )
        return result, state
