"""Tests for connection utilities."""
import httpx
import pytest

from mcp_routeros.utils.connection import RETRYABLE_EXCEPTIONS, with_retry


class TestWithRetry:
    """Tests for retry decorator."""

    @pytest.mark.asyncio
    async def test_async_success_no_retry(self):
        """Successful async function doesn't retry."""
        call_count = 0

        @with_retry(max_attempts=3)
        async def succeeding_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await succeeding_func()
        assert result == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_async_retry_then_success(self):
        """Async function retries on failure then succeeds."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def failing_then_succeeding():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ConnectionRefusedError("Connection refused")
            return "success"

        result = await failing_then_succeeding()
        assert result == "success"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_async_max_retries_exceeded(self):
        """Async function raises after max retries."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def always_failing():
            nonlocal call_count
            call_count += 1
            raise httpx.ConnectError("Connection refused")

        with pytest.raises(httpx.ConnectError):
            await always_failing()
        assert call_count == 3

    def test_sync_success_no_retry(self):
        """Successful sync function doesn't retry."""
        call_count = 0

        @with_retry(max_attempts=3)
        def succeeding_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert succeeding_func() == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_delivered_request_not_retried(self):
        """A read timeout may mean the write landed, so it is not retried."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def timing_out():
            nonlocal call_count
            call_count += 1
            raise httpx.ReadTimeout("timed out")

        with pytest.raises(httpx.ReadTimeout):
            await timing_out()
        assert call_count == 1


class TestRetryableExceptions:
    """Only failures before delivery are retried."""

    def test_connection_refused_is_retryable(self):
        assert ConnectionRefusedError in RETRYABLE_EXCEPTIONS

    def test_connect_errors_are_retryable(self):
        assert httpx.ConnectError in RETRYABLE_EXCEPTIONS
        assert httpx.ConnectTimeout in RETRYABLE_EXCEPTIONS

    def test_read_timeout_is_not_retryable(self):
        assert not issubclass(httpx.ReadTimeout, RETRYABLE_EXCEPTIONS)
