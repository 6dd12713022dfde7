"""Tests for RetryPolicy classification, attempt bounds and backoff."""

from __future__ import annotations

import pytest

from devsweep.core.exceptions import FatalRemoteError, NotFoundError, TransientRemoteError
from devsweep.orchestration.retry_policy import RetryPolicy, backoff_delay_ms, is_retryable


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class Scripted:
    """Async operation raising queued errors, then returning ``result``."""

    def __init__(self, *errors: BaseException, result: str = "ok") -> None:
        self._errors = list(errors)
        self._result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return self._result


def _rate_limited() -> TransientRemoteError:
    return TransientRemoteError("HTTP 429 rateLimitExceeded", signal="rate_limit", status_code=429)


@pytest.fixture
def sleep():
    return RecordingSleep()


class TestClassification:
    @pytest.mark.parametrize("exc", [
        _rate_limited(),
        TransientRemoteError("HTTP 503", signal="backend_error"),
        RuntimeError("User Rate Limit Exceeded"),
        RuntimeError("Service unavailable. Please try again"),
        RuntimeError("Internal error encountered."),
        RuntimeError("backendError"),
    ])
    def test_retryable(self, exc):
        assert is_retryable(exc)

    @pytest.mark.parametrize("exc", [
        NotFoundError("Resource Not Found: userKey"),
        FatalRemoteError("rate limit wording does not matter here"),
        ValueError("bad input"),
        PermissionError("Not Authorized to access this resource/api"),
    ])
    def test_fatal(self, exc):
        assert not is_retryable(exc)

    def test_backoff_formula(self):
        assert [backoff_delay_ms(a, 1000) for a in (1, 2, 3)] == [1000, 2000, 4000]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


@pytest.mark.asyncio
class TestExecute:
    async def test_success_first_try(self, sleep):
        op = Scripted()
        assert await RetryPolicy(sleep=sleep).execute(op) == "ok"
        assert op.calls == 1
        assert sleep.delays == []

    async def test_rate_limited_twice_then_succeeds(self, sleep):
        op = Scripted(_rate_limited(), _rate_limited())
        policy = RetryPolicy(max_attempts=3, base_delay_ms=1000, sleep=sleep)
        assert await policy.execute(op) == "ok"
        assert op.calls == 3
        assert sleep.delays == [1.0, 2.0]

    async def test_never_more_than_max_attempts(self, sleep):
        op = Scripted(*[_rate_limited() for _ in range(10)])
        with pytest.raises(FatalRemoteError) as excinfo:
            await RetryPolicy(max_attempts=3, sleep=sleep).execute(op)
        assert op.calls == 3
        assert excinfo.value.attempts == 3
        assert excinfo.value.exhausted is True
        assert isinstance(excinfo.value.__cause__, TransientRemoteError)

    async def test_non_retryable_on_first_attempt_calls_once(self, sleep):
        op = Scripted(FatalRemoteError("HTTP 400 invalid"))
        with pytest.raises(FatalRemoteError) as excinfo:
            await RetryPolicy(max_attempts=3, sleep=sleep).execute(op)
        assert op.calls == 1
        assert excinfo.value.exhausted is False
        assert sleep.delays == []

    async def test_not_found_propagates_unchanged(self, sleep):
        op = Scripted(NotFoundError("gone"))
        with pytest.raises(NotFoundError):
            await RetryPolicy(sleep=sleep).execute(op)
        assert op.calls == 1

    async def test_foreign_error_is_wrapped(self, sleep):
        op = Scripted(KeyError("missing"))
        with pytest.raises(FatalRemoteError) as excinfo:
            await RetryPolicy(sleep=sleep).execute(op)
        assert isinstance(excinfo.value.__cause__, KeyError)
        assert op.calls == 1

    async def test_per_call_overrides(self, sleep):
        op = Scripted(_rate_limited(), _rate_limited(), _rate_limited())
        policy = RetryPolicy(max_attempts=3, base_delay_ms=1000, sleep=sleep)
        with pytest.raises(FatalRemoteError):
            await policy.execute(op, max_attempts=2, base_delay_ms=250)
        assert op.calls == 2
        assert sleep.delays == [0.25]

    async def test_delay_is_capped(self, sleep):
        op = Scripted(*[_rate_limited() for _ in range(4)])
        policy = RetryPolicy(max_attempts=5, base_delay_ms=1000, max_delay_ms=3000, sleep=sleep)
        assert await policy.execute(op) == "ok"
        assert sleep.delays == [1.0, 2.0, 3.0, 3.0]

    async def test_sleeps_follow_backoff_formula(self, sleep):
        op = Scripted(*[_rate_limited() for _ in range(3)])
        policy = RetryPolicy(max_attempts=4, base_delay_ms=300, sleep=sleep)
        assert await policy.execute(op) == "ok"
        assert sleep.delays == [backoff_delay_ms(a, 300) / 1000 for a in (1, 2, 3)]
