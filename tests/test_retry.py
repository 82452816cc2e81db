from __future__ import annotations

from typing import List

import pytest

from stealth_browser.browser.errors import ElementNotFoundError, RetryExhaustedError
from stealth_browser.browser.retry import RetryPolicy
from tests.fakes import RecordingSleep


class Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0
        self.raised: List[Exception] = []

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            error = RuntimeError(f"stall #{self.calls}")
            self.raised.append(error)
            raise error
        return "ok"


def test_fails_twice_then_succeeds_with_exponential_waits(sleeps: RecordingSleep) -> None:
    operation = Flaky(failures=2)
    policy = RetryPolicy(max_attempts=3, base_delay_ms=1000, sleep=sleeps)

    assert policy.call(operation) == "ok"
    assert operation.calls == 3
    assert sleeps.calls == [1.0, 2.0]
    assert sum(sleeps.calls) * 1000 == pytest.approx(3000)


def test_exhaustion_surfaces_last_failure(sleeps: RecordingSleep) -> None:
    operation = Flaky(failures=10)
    policy = RetryPolicy(max_attempts=3, base_delay_ms=1000, sleep=sleeps)

    with pytest.raises(RetryExhaustedError) as exc_info:
        policy.call(operation)

    error = exc_info.value
    assert operation.calls == 3
    assert error.attempts == 3
    assert error.last_error is operation.raised[-1]
    assert error.last_error is not operation.raised[0]
    assert error.__cause__ is operation.raised[-1]
    assert "stall #3" in str(error)
    assert sleeps.calls == [1.0, 2.0]


def test_success_on_first_attempt_never_sleeps(sleeps: RecordingSleep) -> None:
    assert RetryPolicy(sleep=sleeps).call(lambda: 42) == 42
    assert sleeps.calls == []


def test_every_error_kind_is_retried(sleeps: RecordingSleep) -> None:
    calls = []

    def missing() -> None:
        calls.append(1)
        raise ElementNotFoundError("#never")

    with pytest.raises(RetryExhaustedError) as exc_info:
        RetryPolicy(max_attempts=4, base_delay_ms=10, sleep=sleeps).call(missing)
    assert len(calls) == 4
    assert isinstance(exc_info.value.last_error, ElementNotFoundError)
    assert sleeps.calls == pytest.approx([0.01, 0.02, 0.04])


def test_single_attempt_policy_does_not_wait(sleeps: RecordingSleep) -> None:
    with pytest.raises(RetryExhaustedError):
        RetryPolicy(max_attempts=1, sleep=sleeps).call(Flaky(failures=1))
    assert sleeps.calls == []


def test_delays_have_no_cap() -> None:
    assert RetryPolicy(max_attempts=6, base_delay_ms=1000).delays_ms() == [
        1000,
        2000,
        4000,
        8000,
        16000,
    ]


@pytest.mark.parametrize(("attempts", "delay"), [(0, 1000), (3, -1)])
def test_invalid_policy_arguments(attempts: int, delay: int) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=attempts, base_delay_ms=delay)
