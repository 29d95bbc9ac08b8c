"""Retry policies for the library's collaborators.

The aggregation core never retries on its own: a failed bulk read surfaces as
DataFetchError and a failed subscription as a disconnected reducer. These
decorators are for the edges: verifying the event-bus connection at startup,
and callers who choose to retry bulk reads.
"""

import logging
from typing import Callable, Tuple, Type, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log the failed attempt before sleeping."""
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"[Resilience] Attempt {retry_state.attempt_number} of "
        f"{getattr(retry_state.fn, '__name__', 'call')} failed after "
        f"{retry_state.seconds_since_start:.1f}s: {exception}"
    )


# Startup connection policy (event bus ping)
# - Wait 2s, 4s, 8s, 16s between attempts
# - Stop after 5 attempts, then re-raise the last exception
service_startup_retry = retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=32),
    before_sleep=_log_retry_attempt,
    reraise=True,
)


def create_custom_retry(
    max_attempts: int = 5,
    min_wait: float = 2,
    max_wait: float = 32,
    multiplier: float = 1,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Create a retry decorator with specific parameters.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between attempts (seconds)
        max_wait: Maximum wait time between attempts (seconds)
        multiplier: Exponential backoff multiplier
        retry_on: Exception types that trigger another attempt

    Returns:
        A retry decorator; the last exception is re-raised when attempts run out

    Example:
        ```python
        fetch_retry = create_custom_retry(max_attempts=3, retry_on=(DataFetchError,))

        @fetch_retry
        async def load_cases():
            return await client.fetch_all_cases()
        ```
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry_attempt,
        reraise=True,
    )
