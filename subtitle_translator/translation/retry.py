"""
Retry with exponential backoff for provider calls.
"""
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from ..errors import PermanentNetworkError, ProviderAPIError


T = TypeVar("T")

RETRYABLE_STATUS = (429, 500, 502, 503)
RETRYABLE_STATUS_CODES = tuple(str(code) for code in RETRYABLE_STATUS)


def is_retryable(error: BaseException) -> bool:
    """
    Rate limits and upstream 5xx failures are retried, everything else is not.

    Provider errors are judged by their HTTP status, never by the response
    body quoted in their message. Other exceptions fall back to looking for
    a retryable status code in the message.
    """
    if isinstance(error, PermanentNetworkError):
        return False
    if isinstance(error, ProviderAPIError) and error.status_code is not None:
        return error.status_code in RETRYABLE_STATUS
    message = str(error)
    return any(code in message for code in RETRYABLE_STATUS_CODES)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run operation, retrying retryable failures.

    Attempt k that fails retryably waits base_delay * 2 ** (k - 1) seconds
    before the next one. At most max_retries + 1 attempts are made; the last
    error is raised once they are used up.

    Args:
        operation: Zero-argument coroutine function
        max_retries: Number of retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        on_retry: Called with (attempt, error) before each retry
        sleep: Coroutine used for waiting

    Returns:
        The operation's result
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt > max_retries or not is_retryable(e):
                raise

            delay = base_delay * (2 ** (attempt - 1))
            if on_retry:
                on_retry(attempt, e)
            logger.debug(f"Retrying in {delay:.2f}s after attempt {attempt} failed: {e}")
            await sleep(delay)
            attempt += 1
