"""Bounded retry with exponential backoff for outbound calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dissonant.core.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def retry_with_backoff[T](
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    attempts: int = 3,
    base_delay: float = 2.0,
    max_delay: float = 60.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Await ``operation`` up to ``attempts`` times.

    The delay after failed attempt ``n`` is ``base_delay * 2 ** (n - 1)``
    (2s, 4s, 8s... with the default base), capped at ``max_delay``. No delay
    follows the final attempt.

    Raises:
        RetryExhaustedError: every attempt raised one of ``retry_on``.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def _log_failure(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s failed (attempt %d/%d): %s", name, state.attempt_number, attempts, error
        )

    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(retry_on),
        after=_log_failure,
    )
    try:
        return await retrying(operation)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        assert last_error is not None
        raise RetryExhaustedError(name, attempts, last_error) from last_error
