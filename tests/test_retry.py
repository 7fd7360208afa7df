"""
Tests for retry logic and rate-limit detection.
"""

import pytest

from talentmatch.errors import RateLimitError
from talentmatch.retry import RetryError, exponential_backoff, is_rate_limit_error


class TestExponentialBackoff:
    """Test exponential backoff decorator."""

    @pytest.mark.asyncio
    async def test_success_on_first_try(self):
        """Function that succeeds immediately should not retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01)
        async def succeeds():
            call_count[0] += 1
            return "success"

        assert await succeeds() == "success"
        assert call_count[0] == 1

    @pytest.mark.asyncio
    async def test_retry_then_succeed(self):
        """Function that fails then succeeds should retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01)
        async def fails_twice():
            call_count[0] += 1
            if call_count[0] < 3:
                raise ConnectionError("Temporary failure")
            return "success"

        assert await fails_twice() == "success"
        assert call_count[0] == 3

    @pytest.mark.asyncio
    async def test_all_retries_exhausted(self):
        """Should raise RetryError after all attempts fail."""
        call_count = [0]

        @exponential_backoff(max_retries=2, base_delay=0.01)
        async def always_fails():
            call_count[0] += 1
            raise ValueError("Always fails")

        with pytest.raises(RetryError):
            await always_fails()

        assert call_count[0] == 3  # Initial + 2 retries

    @pytest.mark.asyncio
    async def test_reraise_keeps_original_exception(self):
        """With reraise the last exception escapes instead of RetryError."""

        @exponential_backoff(max_retries=1, base_delay=0.0, reraise=True)
        async def always_limited():
            raise RateLimitError("429")

        with pytest.raises(RateLimitError):
            await always_limited()

    @pytest.mark.asyncio
    async def test_only_catches_specified_exceptions(self):
        """Should only retry on specified exception types."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01, exceptions=(RateLimitError,))
        async def raises_value_error():
            call_count[0] += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            await raises_value_error()

        assert call_count[0] == 1

    @pytest.mark.asyncio
    async def test_exponential_delay(self):
        """Delay should increase exponentially."""
        delays = []

        @exponential_backoff(
            max_retries=3,
            base_delay=0.01,
            exponential_base=2.0,
            on_retry=lambda attempt, exception, delay: delays.append(delay),
        )
        async def always_fails():
            raise ConnectionError("Test")

        with pytest.raises(RetryError):
            await always_fails()

        assert delays == [0.01, 0.02, 0.04]

    @pytest.mark.asyncio
    async def test_max_delay_cap(self):
        """Delay should not exceed max_delay."""
        delays = []

        @exponential_backoff(
            max_retries=4,
            base_delay=0.01,
            max_delay=0.02,
            exponential_base=3.0,
            on_retry=lambda attempt, exception, delay: delays.append(delay),
        )
        async def always_fails():
            raise ConnectionError("Test")

        with pytest.raises(RetryError):
            await always_fails()

        assert all(d <= 0.02 for d in delays)


class TestRateLimitDetection:
    """Test rate-limit classification."""

    def test_status_code(self):
        error = Exception("Error")
        error.status_code = 429
        assert is_rate_limit_error(error)

    @pytest.mark.parametrize("message", [
        "Error code: 429",
        "Rate limit reached for gpt-4o",
        "rate_limit_exceeded",
        "Too Many Requests",
    ])
    def test_messages(self, message):
        assert is_rate_limit_error(Exception(message))

    def test_other_errors(self):
        assert not is_rate_limit_error(Exception("Invalid API key"))
