"""
Retry helpers for calls into external collaborators (detection models).
Implements exponential backoff on top of tenacity.
"""
import logging

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 10.0,
    exceptions: tuple = (Exception,),
):
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait between attempts (seconds)
        max_wait: Maximum wait between attempts (seconds)
        exceptions: Exception types that trigger a retry

    Returns:
        Configured decorator; the last exception is re-raised
    """
    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
