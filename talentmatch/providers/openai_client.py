"""
Shared plumbing for OpenAI-backed providers: client construction, error
translation into the talentmatch taxonomy, and rate-limit backoff.
"""

from typing import Awaitable, Callable, Optional, TypeVar

import openai
from openai import AsyncOpenAI

from ..errors import ConfigurationError, RateLimitError, ScorerError
from ..logger import get_logger
from ..retry import exponential_backoff, is_rate_limit_error

T = TypeVar("T")


def build_client(api_key: Optional[str], client: Optional[AsyncOpenAI] = None) -> AsyncOpenAI:
    """Return the injected client or a new AsyncOpenAI; fail fast without credentials."""
    if client is not None:
        return client
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY not set. Set env var or add it to .env.")
    return AsyncOpenAI(api_key=api_key)


def translate_error(exc: Exception) -> ScorerError:
    if isinstance(exc, openai.RateLimitError) or is_rate_limit_error(exc):
        return RateLimitError(f"Provider rate limited: {exc}")
    return ScorerError(f"Provider call failed: {exc}")


async def call_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> T:
    """
    Run a provider call, retrying only rate-limit failures.

    Args:
        func: Zero-argument coroutine function performing one API call
        max_retries: Retries after the first attempt
        base_delay: First backoff delay in seconds, doubled per retry
        max_delay: Cap on a single delay

    Raises:
        RateLimitError: still rate limited after all retries
        ScorerError: any other provider failure (not retried)
    """
    logger = get_logger()

    def on_retry(attempt, exc, delay):
        logger.warning(
            f"Rate limited, retry {attempt}/{max_retries} in {delay:.1f}s",
            error=str(exc),
        )

    @exponential_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max_delay,
        exceptions=(RateLimitError,),
        on_retry=on_retry,
        reraise=True,
    )
    async def attempt():
        logger.record_api_call()
        try:
            return await func()
        except openai.OpenAIError as e:
            raise translate_error(e) from e

    return await attempt()
