"""RetryPolicy: retry classification and exponential backoff with tenacity.

Pure with respect to the engine: it never logs or persists anything. Callers
get either the operation's result or a single exception to record.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from devsweep.core.exceptions import FatalRemoteError, NotFoundError, RemoteError, TransientRemoteError

T = TypeVar("T")

# Message signatures of retryable failures raised by foreign clients.
RETRYABLE_SIGNATURES: tuple[re.Pattern[str], ...] = (
    re.compile(r"rate ?limit", re.IGNORECASE),
    re.compile(r"quota exceeded", re.IGNORECASE),
    re.compile(r"backend ?error", re.IGNORECASE),
    re.compile(r"service unavailable", re.IGNORECASE),
    re.compile(r"internal (server )?error", re.IGNORECASE),
)


def is_retryable(exc: BaseException) -> bool:
    """True for rate-limit, transient backend and internal-error failures."""
    if isinstance(exc, TransientRemoteError):
        return True
    if isinstance(exc, (NotFoundError, FatalRemoteError)):
        return False
    if not isinstance(exc, Exception):
        return False
    message = str(exc)
    return any(sig.search(message) for sig in RETRYABLE_SIGNATURES)


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    """Delay after failed ``attempt`` (1-based): ``base * 2^(attempt-1)``."""
    return base_delay_ms * 2 ** (attempt - 1)


class RetryPolicy:
    """Retries an async remote operation on retryable failures only.

    ``max_attempts`` is the TOTAL number of calls: 3 means try, retry, retry.
    """

    def __init__(self, max_attempts: int = 3, base_delay_ms: int = 1000, *,
                 max_delay_ms: int = 60000,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._max_delay_ms = max_delay_ms
        self._sleep = sleep

    async def execute(self, operation: Callable[[], Awaitable[T]], *,
                      max_attempts: int | None = None, base_delay_ms: int | None = None) -> T:
        """Run ``operation`` until it succeeds, fails fatally, or attempts run out.

        Raises:
            NotFoundError, FatalRemoteError: Non-retryable domain errors, unchanged.
            FatalRemoteError: Wrapping anything else; ``exhausted`` is set when
                the final error was retryable.
        """
        attempts_allowed = max_attempts if max_attempts is not None else self._max_attempts
        base_ms = base_delay_ms if base_delay_ms is not None else self._base_delay_ms
        attempts = 0

        def wait(retry_state: RetryCallState) -> float:
            delay_ms = backoff_delay_ms(retry_state.attempt_number, base_ms)
            return min(delay_ms, self._max_delay_ms) / 1000

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await operation()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts_allowed),
            wait=wait,
            retry=retry_if_exception(is_retryable),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(attempt)
        except Exception as exc:
            retryable = is_retryable(exc)
            if isinstance(exc, RemoteError) and not retryable:
                raise
            raise FatalRemoteError(
                f"{type(exc).__name__} after {attempts} attempt(s): {exc}",
                attempts=attempts,
                exhausted=retryable,
            ) from exc
