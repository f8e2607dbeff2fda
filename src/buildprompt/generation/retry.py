"""Exponential backoff for flaky async operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation, retrying failures with exponential backoff.

    The operation runs at most ``max_retries + 1`` times. Before retry ``n``
    (counting from 0) the caller waits ``base_delay * 2 ** n`` seconds. Any
    exception counts as a failure; the last one is re-raised unchanged once
    attempts run out.

    Args:
        operation: Zero-argument coroutine function.
        max_retries: Retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        sleep: Awaitable sleep function.

    Returns:
        The operation's result.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, exp_base=2, min=0),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)
