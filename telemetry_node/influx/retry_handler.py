"""
Retry handler for transient store failures
Implements exponential backoff retry logic for InfluxDB writes
"""
import asyncio
import logging
import socket
from typing import Any, Callable, Optional

from urllib3.exceptions import MaxRetryError, ProtocolError

logger = logging.getLogger(__name__)

# Connection drops, timeouts and DNS failures; HTTP status errors are not transient
TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    OSError,
    socket.gaierror,
    socket.herror,
    MaxRetryError,
    ProtocolError,
)


def is_transient(error: BaseException) -> bool:
    """True if the error is worth another attempt."""
    return isinstance(error, TRANSIENT_ERRORS)


def backoff_delay(attempt: int, initial_delay: float, max_delay: float, exponential_base: float = 2.0) -> float:
    """Delay before retry number attempt (1-based), capped at max_delay."""
    return min(initial_delay * (exponential_base ** (attempt - 1)), max_delay)


async def retry_with_backoff(
    func: Callable[..., Any],
    *args,
    max_retries: int = 2,
    initial_delay: float = 0.5,
    max_delay: float = 5.0,
    exponential_base: float = 2.0,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    **kwargs
) -> Any:
    """
    Retry an async function with exponential backoff on transient failures.

    Args:
        func: Async function to retry
        *args: Positional arguments to pass to function
        max_retries: Extra attempts after the first one (0 disables retrying)
        initial_delay: Delay before the first retry in seconds
        max_delay: Upper bound for any single delay in seconds
        exponential_base: Growth factor of the delay
        on_retry: Called with (attempt, error) before each retry
        **kwargs: Keyword arguments to pass to function

    Returns:
        Result from function call

    Raises:
        The last transient error once retries are exhausted, or any
        non-transient error immediately
    """
    attempt = 0

    while True:
        try:
            return await func(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except TRANSIENT_ERRORS as e:
            attempt += 1
            if attempt > max_retries:
                if max_retries > 0:
                    logger.error(f"All {max_retries + 1} attempts failed. Last error: {e}")
                raise

            delay = backoff_delay(attempt, initial_delay, max_delay, exponential_base)
            log_level = logger.info if attempt <= 1 else logger.warning
            log_level(f"Attempt {attempt} failed: {e}. Retrying in {delay:.2f}s... (max_retries={max_retries})")
            if on_retry is not None:
                on_retry(attempt, e)
            await asyncio.sleep(delay)
