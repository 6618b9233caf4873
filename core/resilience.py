"""
Resilience and concurrency patterns for data store access.

Provides:
- Exponential backoff retry
- Fail-fast concurrent fan-out (gather_all)
"""
import asyncio
import random
from dataclasses import dataclass
from typing import Optional, Callable, Any, Awaitable, List, TypeVar

from core.observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    jitter: float = 0.1  # random jitter factor


async def retry_with_backoff(
    func: Callable[..., Any],
    *args,
    config: Optional[RetryConfig] = None,
    retryable_exceptions: tuple = (Exception,),
    **kwargs
) -> Any:
    """
    Execute function with exponential backoff retry.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        config: Retry configuration
        retryable_exceptions: Exceptions to retry on
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        Last exception if all retries fail
    """
    config = config or RetryConfig()
    last_exception = None

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retryable_exceptions as e:
            last_exception = e

            if attempt == config.max_attempts:
                logger.error(
                    f"All {config.max_attempts} retry attempts failed",
                    extra={"error": str(e)}
                )
                raise

            delay = min(
                config.base_delay * (config.exponential_base ** (attempt - 1)),
                config.max_delay
            )
            delay += delay * config.jitter * random.random()

            logger.warning(
                f"Attempt {attempt} failed, retrying in {delay:.2f}s",
                extra={"attempt": attempt, "delay": delay, "error": str(e)}
            )

            await asyncio.sleep(delay)

    raise last_exception


async def gather_all(*aws: Awaitable[T]) -> List[T]:
    """
    Run awaitables concurrently and return their results in order.

    Unlike a bare ``asyncio.gather``, the first failure cancels every
    sibling that is still running before the exception propagates, so a
    failed fan-out never leaves orphaned queries behind. Cancelling the
    caller cancels all children too.

    Usage:
        bank_count, bip_count = await gather_all(count_bank(), count_bip())
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        # Retrieve remaining exceptions so they are not reported as unhandled
        for task in tasks:
            if task.done() and not task.cancelled():
                task.exception()
        raise
