"""
Retry helper for transient Supabase failures.

Supabase calls made from Cloud Run occasionally fail with DNS lookup or
read timeouts. Those are retried with exponential backoff; every other
error is surfaced immediately.

Non-idempotent calls (inserts, counter increments) must only be retried
when the request never reached the server, otherwise a lost response
would apply the same write twice. Pass ``should_retry=is_unsent_error``
for those.
"""

import logging
import time
from typing import Callable, TypeVar

import httpx

from .config import DatabaseConfig
from .exceptions import DatabaseError


logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_transient_error(error: Exception) -> bool:
    """Return True for timeouts that are worth retrying."""
    error_msg = str(error)
    return "Lookup timed out" in error_msg or "timeout" in error_msg.lower()


def is_unsent_error(error: Exception) -> bool:
    """Return True only when the request provably never reached the server."""
    if isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout)):
        return True
    return "Lookup timed out" in str(error)


def retry_database_operation(
    operation_func: Callable[[], T],
    max_retries: int = DatabaseConfig.DEFAULT_RETRY_ATTEMPTS,
    initial_delay: float = DatabaseConfig.DEFAULT_INITIAL_DELAY,
    should_retry: Callable[[Exception], bool] = is_transient_error
) -> T:
    """Retry database operations with exponential backoff for timeout issues.

    Args:
        operation_func: Function to retry
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        should_retry: Decides whether a failed attempt may be repeated

    Returns:
        Result of operation_func

    Raises:
        DatabaseError: If all retries fail or a non-retryable error occurs.
            DatabaseError subclasses raised by operation_func pass through.
    """
    for attempt in range(max_retries + 1):
        try:
            return operation_func()
        except DatabaseError:
            raise
        except Exception as e:
            error_msg = str(e)
            if should_retry(e):
                if attempt < max_retries:
                    delay = initial_delay * (2 ** attempt)
                    logger.warning(
                        f"Database operation failed (attempt {attempt + 1}/{max_retries + 1}), "
                        f"retrying in {delay}s: {error_msg}"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Database operation failed after {max_retries + 1} attempts: {error_msg}"
                )
                raise DatabaseError(
                    f"Database operation failed after {max_retries + 1} attempts: {error_msg}"
                )
            logger.error(f"Database operation failed with non-retryable error: {error_msg}")
            raise DatabaseError(f"Database operation failed: {error_msg}")

    raise DatabaseError("Database operation failed: retries exhausted")
