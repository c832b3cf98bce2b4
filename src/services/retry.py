"""
Exponential backoff retry for async operations.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from core.errors import AuthorizationError, RequestTimeoutError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTH_MARKER = "auth"


def is_authorization_failure(error: BaseException) -> bool:
    return isinstance(error, AuthorizationError) or AUTH_MARKER in str(error).lower()


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay after the given 1-indexed failed attempt."""
    return base_delay * 2 ** (attempt - 1)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 2.0,
    timeout: Optional[float] = 30.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or ``max_attempts`` is exhausted.

    Every attempt is raced against a fresh ``timeout``. Authorization failures
    propagate immediately. There is no state shared between calls.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            if timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=timeout)

        except asyncio.TimeoutError:
            last_error = RequestTimeoutError(timeout)

        except Exception as e:
            if is_authorization_failure(e):
                logger.warning(f"Attempt {attempt}/{max_attempts}: authorization failure, not retrying: {e}")
                raise
            last_error = e

        if attempt < max_attempts:
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {last_error}. Retrying in {delay:.2f}s"
            )
            await sleep(delay)

    logger.error(f"Failed after {max_attempts} attempts: {last_error}")
    raise RetryExhaustedError(max_attempts, last_error) from last_error
