"""
Tests for the bounded retry helper.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reactive_query import RetryConfig, with_retry
from reactive_query.exceptions import ErrorHandler, NotFoundError, ServerError


class TestRetryConfig:
    """Test delay computation."""

    def test_exponential_delays(self):
        config = RetryConfig(base_delay=0.3)

        assert [config.delay_for(i) for i in range(3)] == pytest.approx([0.3, 0.6, 1.2])

    def test_max_delay(self):
        config = RetryConfig(base_delay=10, max_delay=15)

        assert config.delay_for(3) == 15

    def test_invalid(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)


class TestWithRetry:
    """Test with_retry."""

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        operation = AsyncMock(return_value=42)

        assert await with_retry(operation) == 42
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_sync_operation(self):
        operation = MagicMock(side_effect=[ValueError("x"), "ok"])

        with patch("reactive_query.retry.asyncio.sleep", new=AsyncMock()):
            assert await with_retry(operation) == "ok"

    @pytest.mark.asyncio
    async def test_backoff_between_attempts(self):
        operation = AsyncMock(side_effect=[ServerError("e", 500), ServerError("e", 502), "ok"])
        sleep = AsyncMock()

        with patch("reactive_query.retry.asyncio.sleep", new=sleep):
            result = await with_retry(operation, max_attempts=3, base_delay=0.3)

        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.3, 0.6])

    @pytest.mark.asyncio
    async def test_reraises_last_failure(self):
        last = ServerError("last", 503)
        operation = AsyncMock(side_effect=[ServerError("first", 500), last])

        with patch("reactive_query.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ServerError) as exc_info:
                await with_retry(operation, max_attempts=2)

        assert exc_info.value is last
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_on_predicate(self):
        operation = AsyncMock(side_effect=NotFoundError("missing", 404))

        with pytest.raises(NotFoundError):
            await with_retry(operation, retry_on=ErrorHandler.is_retryable_error)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_config_overrides_shortcuts(self):
        operation = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await with_retry(operation, config=RetryConfig(max_attempts=4, base_delay=0))

        assert operation.await_count == 4
