"""Exponential backoff retry executor (async).

Runs an awaitable operation, retrying transient failures with pure exponential
backoff (base_delay, 2*base_delay, 4*base_delay, ...) and failing fast on
errors the classifier marks as permanent.

Retry status is published to subscribed observers (for example a UI spinner).
It is advisory telemetry only: observers cannot change the outcome, and an
observer that raises is logged and ignored.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from src.models.errors import RecipeServiceError, is_retryable_error
from src.models.models import RetryState
from src.utils.logger import logger

T = TypeVar("T")

StatusObserver = Callable[[RetryState], None]


def _log_extra(attempt: int, error: Optional[BaseException] = None) -> dict:
    extra = {"attempt": attempt}
    if isinstance(error, RecipeServiceError):
        extra["error_kind"] = error.kind.value
    return extra


class RetryExecutor:
    """Retry an async operation with exponential backoff.

    Args:
        max_attempts: Total attempts including the first one (default: 3).
        base_delay: Delay in seconds before the second attempt; doubled after each failure (default: 2.0).
        is_retryable: Classifier deciding whether a failure is transient.
        on_status: Optional observer subscribed at construction time.

    Raises:
        ValueError: If max_attempts < 1 or base_delay < 0.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        is_retryable: Callable[[BaseException], bool] = is_retryable_error,
        on_status: Optional[StatusObserver] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"base_delay must not be negative, got: {base_delay}")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.is_retryable = is_retryable
        self._observers: list[StatusObserver] = []
        self._state = RetryState.idle()
        if on_status is not None:
            self.subscribe(on_status)

    @property
    def state(self) -> RetryState:
        """Status of the current (or most recent) call."""
        return self._state

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        """Register a status observer. Returns a function that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after failed attempt number `attempt` (1-based)."""
        return self.base_delay * 2 ** (attempt - 1)

    def _publish(self, state: RetryState) -> None:
        if state == self._state:
            return
        self._state = state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception as e:
                logger.warning(f"Retry status observer failed: {e}")

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation` until it succeeds, fails permanently, or attempts run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt.

        Returns:
            The operation's result.

        Raises:
            Exception: The first non-retryable error, or the last retryable error
                once max_attempts is reached.
            asyncio.CancelledError: If the caller is cancelled; no further attempts are made.
        """
        self._publish(RetryState.idle())
        attempt = 0
        try:
            while True:
                attempt += 1
                try:
                    logger.debug(f"Attempt {attempt}/{self.max_attempts}...", extra=_log_extra(attempt))
                    return await operation()
                except Exception as e:
                    if not self.is_retryable(e):
                        logger.warning(f"Non-retryable error on attempt {attempt}: {e}", extra=_log_extra(attempt, e))
                        raise

                    if attempt >= self.max_attempts:
                        logger.error(f"Giving up after {self.max_attempts} attempts: {e}", extra=_log_extra(attempt, e))
                        raise

                    delay = self.backoff_delay(attempt)
                    next_attempt = attempt + 1
                    self._publish(
                        RetryState(
                            attempt=next_attempt,
                            is_retrying=True,
                            message=f"retrying (attempt {next_attempt}/{self.max_attempts})",
                        )
                    )
                    logger.warning(
                        f"Attempt {attempt} failed: {e}. Retrying in {delay}s "
                        f"(attempt {next_attempt}/{self.max_attempts})",
                        extra=_log_extra(attempt, e),
                    )
                    await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.info("Retry loop cancelled", extra=_log_extra(attempt))
            raise
        finally:
            self._publish(RetryState.idle())


async def execute_with_retries(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 2.0,
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    on_status: Optional[StatusObserver] = None,
) -> T:
    """One-shot helper: run `operation` through a fresh RetryExecutor."""
    executor = RetryExecutor(max_attempts, base_delay, is_retryable, on_status)
    return await executor.execute(operation)
