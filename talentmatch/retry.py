"""
Retry logic with exponential backoff for provider calls.

Provider calls are coroutines, so the backoff sleeps with asyncio.sleep
and never blocks the event loop. Rate-limit detection lives here too so
every provider classifies errors the same way.
"""

import asyncio
import functools
from typing import Callable, Optional, Tuple, Type

from .errors import MatchingError


class RetryError(MatchingError):
    """Raised when all retry attempts are exhausted."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
    reraise: bool = False,
):
    """
    Decorator for retrying coroutine functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback function(attempt, exception, delay)
        reraise: Re-raise the last exception instead of RetryError once
            attempts are exhausted

    Example:
        @exponential_backoff(max_retries=3, base_delay=1.0, exceptions=(RateLimitError,))
        async def complete(prompt):
            return await client.chat.completions.create(...)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt < max_retries:
                        current_delay = min(delay, max_delay)

                        if on_retry:
                            on_retry(attempt + 1, e, current_delay)

                        await asyncio.sleep(current_delay)
                        delay *= exponential_base
                    elif reraise:
                        raise
                    else:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}"
                        ) from e

        return wrapper
    return decorator


def is_rate_limit_error(exception: Exception) -> bool:
    """
    Determine if a provider exception signals rate limiting.

    Args:
        exception: Exception to check

    Returns:
        True if the error carries a 429 status or rate-limit wording
    """
    status = getattr(exception, "status_code", None)
    if status == 429:
        return True

    error_str = str(exception).lower()
    rate_limit_keywords = [
        '429',
        'rate limit',
        'rate_limit',
        'too many requests',
    ]
    return any(keyword in error_str for keyword in rate_limit_keywords)
