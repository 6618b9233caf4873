"""
Integration tests for core/resilience.py

Tests retry with backoff and the fail-fast concurrent fan-out.
"""
import asyncio
import pytest

from core.exceptions import DataStoreQueryError
from core.resilience import RetryConfig, retry_with_backoff, gather_all


class TestRetryWithBackoff:
    """Tests for retry_with_backoff function."""

    @pytest.mark.asyncio
    async def test_succeeds_first_try(self):
        """Returns result if first attempt succeeds."""
        async def my_func():
            return "success"

        result = await retry_with_backoff(
            my_func,
            config=RetryConfig(max_attempts=3, base_delay=0.01)
        )
        assert result == "success"

    @pytest.mark.asyncio
    async def test_retries_on_failure(self):
        """Retries on exception up to max_attempts."""
        call_count = 0

        async def my_func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise IOError("Database file is locked")
            return "success"

        result = await retry_with_backoff(
            my_func,
            config=RetryConfig(max_attempts=3, base_delay=0.01),
            retryable_exceptions=(IOError,),
        )
        assert result == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):
        """Raises exception after all attempts exhausted."""
        async def my_func():
            raise ConnectionError("Always fails")

        with pytest.raises(ConnectionError):
            await retry_with_backoff(
                my_func,
                config=RetryConfig(max_attempts=2, base_delay=0.01)
            )

    @pytest.mark.asyncio
    async def test_respects_retryable_exceptions(self):
        """Only retries on specified exception types."""
        call_count = 0

        async def my_func():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            await retry_with_backoff(
                my_func,
                config=RetryConfig(max_attempts=3, base_delay=0.01),
                retryable_exceptions=(ConnectionError,)
            )
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_passes_arguments(self):
        async def add(a, b=0):
            return a + b

        assert await retry_with_backoff(add, 2, b=3) == 5


class TestGatherAll:
    """Tests for gather_all fan-out."""

    @pytest.mark.asyncio
    async def test_results_in_argument_order(self):
        """Results follow argument order, not completion order."""
        async def value_after(value, delay):
            await asyncio.sleep(delay)
            return value

        results = await gather_all(value_after("slow", 0.05), value_after("fast", 0.0))
        assert results == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await gather_all() == []

    @pytest.mark.asyncio
    async def test_first_failure_propagates(self):
        async def ok():
            return 1

        async def fail():
            raise DataStoreQueryError("Query failed", "boom")

        with pytest.raises(DataStoreQueryError):
            await gather_all(ok(), fail())

    @pytest.mark.asyncio
    async def test_failure_cancels_siblings(self):
        """A failing branch cancels every branch still running."""
        cancelled = asyncio.Event()
        finished = []

        async def slow():
            try:
                await asyncio.sleep(5)
                finished.append("slow")
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def fail():
            await asyncio.sleep(0.01)
            raise DataStoreQueryError("Query failed", "boom")

        with pytest.raises(DataStoreQueryError):
            await gather_all(slow(), fail())

        assert cancelled.is_set()
        assert finished == []

    @pytest.mark.asyncio
    async def test_outer_cancellation_cancels_children(self):
        child_cancelled = asyncio.Event()

        async def child():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                child_cancelled.set()
                raise

        outer = asyncio.ensure_future(gather_all(child(), child()))
        await asyncio.sleep(0.01)
        outer.cancel()

        with pytest.raises(asyncio.CancelledError):
            await outer
        assert child_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_nested_fan_out(self):
        async def leaf(n):
            return n

        async def branch(a, b):
            x, y = await gather_all(leaf(a), leaf(b))
            return x + y

        assert await gather_all(branch(1, 2), branch(3, 4)) == [3, 7]
