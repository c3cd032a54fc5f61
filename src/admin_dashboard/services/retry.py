"""Per-attempt retry state machine with exponential backoff."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from admin_dashboard.domain.errors import DashboardError, TransientNetworkError
from admin_dashboard.domain.uploads import Attempt, AttemptState

T = TypeVar("T")

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy shared by connection and transfer attempts."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    multiplier: float = 2.0
    max_delay_seconds: float = 10.0
    attempt_timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt_number: int) -> float:
        """Return the backoff delay scheduled after a failed attempt."""
        delay = self.base_delay_seconds * self.multiplier ** (attempt_number - 1)
        return min(delay, self.max_delay_seconds)


class RetryFailedError(Exception):
    """Raised when the last attempt failed or a permanent error was hit."""

    def __init__(self, attempts: list[Attempt], cause: DashboardError) -> None:
        super().__init__(str(cause))
        self.attempts = attempts
        self.cause = cause

    @property
    def retries_exhausted(self) -> bool:
        return is_transient(self.cause)


def is_transient(error: Exception) -> bool:
    return isinstance(error, TransientNetworkError)


@dataclass
class RetryRunner:
    """Drives attempts through Pending -> Attempting -> outcome states.

    Each attempt runs under the policy's timeout; a timeout is recorded as a
    transient failure. Cancellation propagates immediately and is never
    retried.
    """

    policy: RetryPolicy
    action: str
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        attempts: list[Attempt] | None = None,
    ) -> T:
        """Run `operation` until it succeeds or the policy gives up."""
        history = attempts if attempts is not None else []
        timeout = self.policy.attempt_timeout_seconds
        for number in range(1, self.policy.max_attempts + 1):
            attempt = Attempt(number=number)
            history.append(attempt)
            attempt.state = AttemptState.ATTEMPTING
            started = self.clock()
            try:
                result = await asyncio.wait_for(operation(), timeout=timeout)
            except asyncio.CancelledError:
                attempt.elapsed_seconds = self.clock() - started
                attempt.state = AttemptState.FAILED
                _logger.info("%s cancelled on attempt %s", self.action, number)
                raise
            except TimeoutError:
                error: DashboardError = TransientNetworkError(
                    f"{self.action} timed out after {timeout:g}s"
                )
            except DashboardError as exc:
                error = exc
            else:
                attempt.elapsed_seconds = self.clock() - started
                attempt.state = AttemptState.SUCCEEDED
                _logger.info(
                    "%s succeeded on attempt %s/%s in %.2fs",
                    self.action,
                    number,
                    self.policy.max_attempts,
                    attempt.elapsed_seconds,
                )
                return result

            attempt.elapsed_seconds = self.clock() - started
            attempt.error = error
            if not is_transient(error) or number == self.policy.max_attempts:
                attempt.state = AttemptState.FAILED
                _logger.warning(
                    "%s failed on attempt %s/%s after %.2fs: %s",
                    self.action,
                    number,
                    self.policy.max_attempts,
                    attempt.elapsed_seconds,
                    error,
                )
                raise RetryFailedError(history, error)

            attempt.state = AttemptState.RETRY_SCHEDULED
            delay = self.policy.delay_for(number)
            _logger.warning(
                "%s attempt %s/%s failed after %.2fs: %s; retrying in %.1fs",
                self.action,
                number,
                self.policy.max_attempts,
                attempt.elapsed_seconds,
                error,
                delay,
            )
            await self.sleep(delay)
        raise AssertionError("unreachable")
