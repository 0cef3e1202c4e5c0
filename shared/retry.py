"""
Retry mechanism for resilient upstream calls.

Each attempt produces an explicit ``AttemptOutcome``; the loop inspects the
error kind of a failed attempt and decides whether another attempt is made.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence

from shared.errors import UpstreamError
from shared.logging import get_logger


DEFAULT_DELAYS = (0.0, 0.2, 0.4)
DEFAULT_JITTER = 0.15
DEFAULT_RETRY_ON = ("timeout", "network", "protocol")


class RetryConfig:
    """Configuration for retry behavior.

    ``delays[i]`` is the base wait before attempt ``i + 1``; the number of
    attempts is ``len(delays)``. Waits before the second and later attempts
    get an extra uniform jitter in ``[0, jitter)`` seconds.
    """

    def __init__(self,
                 delays: Sequence[float] = DEFAULT_DELAYS,
                 jitter: float = DEFAULT_JITTER,
                 retry_on: Iterable[str] = DEFAULT_RETRY_ON):
        if not delays:
            raise ValueError("at least one attempt is required")
        if jitter < 0:
            raise ValueError("jitter must be non-negative")
        self.delays = tuple(float(d) for d in delays)
        self.jitter = float(jitter)
        self.retry_on = frozenset(retry_on)

    @property
    def max_attempts(self) -> int:
        return len(self.delays)

    @classmethod
    def from_milliseconds(cls,
                          delays_ms: Sequence[int],
                          jitter_ms: int,
                          retry_on: Iterable[str] = DEFAULT_RETRY_ON) -> "RetryConfig":
        return cls(
            delays=[d / 1000.0 for d in delays_ms],
            jitter=jitter_ms / 1000.0,
            retry_on=retry_on,
        )


@dataclass
class AttemptOutcome:
    """Result of one attempt: either ``result`` or ``error`` is set."""

    attempt: int
    delay: float
    result: Any = None
    error: Optional[UpstreamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RetryError(UpstreamError):
    """Raised when all retry attempts are exhausted or a non-retryable error occurs."""

    kind = "exhausted"

    def __init__(self, message: str, last_exception: UpstreamError, attempts: int,
                 outcomes: Optional[List[AttemptOutcome]] = None):
        super().__init__(message, target=last_exception.target, details={
            "attempts": attempts,
            "last_error_kind": last_exception.kind,
            "last_error": last_exception.message,
        })
        self.last_exception = last_exception
        self.attempts = attempts
        self.outcomes = outcomes or []


def calculate_delay(attempt: int, config: RetryConfig,
                    rand: Callable[[], float] = random.random) -> float:
    """Calculate the wait before ``attempt`` (1-based)."""
    base = config.delays[attempt - 1]
    if attempt == 1:
        return base
    return base + rand() * config.jitter


class RetryPolicy:
    """Runs an async operation under a ``RetryConfig``."""

    def __init__(self,
                 config: Optional[RetryConfig] = None,
                 *,
                 name: str = "upstream",
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 rand: Callable[[], float] = random.random,
                 on_outcome: Optional[Callable[[AttemptOutcome], None]] = None):
        self.config = config or RetryConfig()
        self.name = name
        self.logger = get_logger(f"retry.{name}")
        self._sleep = sleep
        self._rand = rand
        self._on_outcome = on_outcome

    def is_retryable(self, error: UpstreamError) -> bool:
        return error.kind in self.config.retry_on

    async def run(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        outcomes: List[AttemptOutcome] = []
        max_attempts = self.config.max_attempts

        for attempt in range(1, max_attempts + 1):
            delay = calculate_delay(attempt, self.config, self._rand)
            if delay > 0:
                await self._sleep(delay)

            outcome = await self._attempt(attempt, delay, func, *args, **kwargs)
            outcomes.append(outcome)
            if self._on_outcome is not None:
                self._on_outcome(outcome)

            if outcome.ok:
                if attempt > 1:
                    self.logger.info("Retry succeeded", attempt=attempt, policy=self.name)
                return outcome.result

            error = outcome.error
            if not self.is_retryable(error):
                self.logger.warning(
                    "Non-retryable upstream error",
                    attempt=attempt,
                    kind=error.kind,
                    error=error.message,
                    target=error.target,
                )
                break

            if attempt < max_attempts:
                self.logger.warning(
                    "Retry attempt failed, waiting before next attempt",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    kind=error.kind,
                    error=error.message,
                    target=error.target,
                )

        last = outcomes[-1].error
        self.logger.error(
            "All retry attempts exhausted",
            attempts=len(outcomes),
            max_attempts=max_attempts,
            kind=last.kind,
            error=last.message,
            target=last.target,
        )
        raise RetryError(
            f"{self.name} failed after {len(outcomes)} attempts",
            last_exception=last,
            attempts=len(outcomes),
            outcomes=outcomes,
        )

    async def _attempt(self, attempt: int, delay: float,
                       func: Callable[..., Awaitable[Any]], *args, **kwargs) -> AttemptOutcome:
        try:
            result = await func(*args, **kwargs)
        except UpstreamError as e:
            return AttemptOutcome(attempt=attempt, delay=delay, error=e)
        return AttemptOutcome(attempt=attempt, delay=delay, result=result)
