"""Bounded exponential-backoff retry for whole command attempts."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

import tenacity

from .errors import RetryExhaustedError

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1000

logger = logging.getLogger(__name__)


def _log_retry(retry_state: tenacity.RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "Attempt %s failed (%s: %s), retrying in %dms",
        retry_state.attempt_number,
        type(exc).__name__,
        exc,
        round(delay * 1000),
    )


class RetryPolicy:
    """Retry any failing callable with pure exponential backoff.

    The wait between attempt ``i`` and ``i + 1`` (0-indexed) is
    ``base_delay_ms * 2**i``. There is no jitter and no upper bound on the
    wait, so large ``max_attempts`` values grow the delay without limit.
    Every exception type is retried the same way, including failures that
    can never succeed on a later attempt.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        *,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms must be non-negative.")
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep or time.sleep

    def delays_ms(self) -> list[int]:
        """Waits that precede attempts 2..max_attempts."""
        return [self.base_delay_ms * 2**i for i in range(self.max_attempts - 1)]

    def call(self, operation: Callable[[], T]) -> T:
        """Run ``operation`` until it succeeds or the attempts are spent.

        Raises :class:`RetryExhaustedError` wrapping the last attempt's
        exception when every attempt fails.
        """
        retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.max_attempts),
            wait=tenacity.wait_exponential(
                multiplier=self.base_delay_ms / 1000,
                exp_base=2,
            ),
            retry=tenacity.retry_if_exception_type(Exception),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=False,
        )
        try:
            return retrying(operation)
        except tenacity.RetryError as exc:
            last_error = exc.last_attempt.exception()
            raise RetryExhaustedError(self.max_attempts, last_error) from last_error


def retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
) -> T:
    """Functional shortcut for ``RetryPolicy(...).call(operation)``."""
    return RetryPolicy(max_attempts, base_delay_ms).call(operation)


__all__ = ["RetryPolicy", "retry", "DEFAULT_MAX_ATTEMPTS", "DEFAULT_BASE_DELAY_MS"]
