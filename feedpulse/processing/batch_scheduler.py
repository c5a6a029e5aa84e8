"""
Batch Scheduler
==============

Runs an async per-item operation over a list in consecutive batches.
Items inside a batch run concurrently, bounded by a semaphore; batch N+1
starts only after every item of batch N has finished. An optional pause is
inserted between batches, never after the last one.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..utils.logging import get_logger_for_component, PerformanceLogger


T = TypeVar("T")
R = TypeVar("R")

SleepFunc = Callable[[float], Awaitable[None]]


class BatchScheduler:
    """Bounded-concurrency batch runner."""

    def __init__(
        self,
        batch_size: int,
        batch_delay: float = 0.0,
        max_concurrency: Optional[int] = None,
        sleep: Optional[SleepFunc] = None,
        name: str = "batch",
    ):
        """Initialize scheduler.

        Args:
            batch_size: Maximum items per batch
            batch_delay: Seconds to pause between batches
            max_concurrency: Concurrent operations allowed inside a batch
                (defaults to batch_size)
            sleep: Awaitable sleep used for the pause (defaults to asyncio.sleep)
            name: Label used in log messages
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if batch_delay < 0:
            raise ValueError("batch_delay cannot be negative")

        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_concurrency = max_concurrency or batch_size
        self.name = name
        self._sleep = sleep or asyncio.sleep
        self.logger = get_logger_for_component("batch_scheduler")

    @staticmethod
    def partition(items: Sequence[T], batch_size: int) -> List[List[T]]:
        """Split items into consecutive batches of at most batch_size."""
        return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]

    async def run(
        self,
        items: Sequence[T],
        operation: Callable[[T], Awaitable[R]],
    ) -> List[R]:
        """Run operation over every item, batch by batch.

        The operation is expected to report failures in its return value;
        an exception raised by it propagates out of run().

        Returns:
            Results in the same order as items
        """
        batches = self.partition(items, self.batch_size)
        results: List[R] = []
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(item: T) -> R:
            async with semaphore:
                return await operation(item)

        with PerformanceLogger(
            self.logger, f"{self.name} run", items=len(items), batches=len(batches)
        ):
            for number, batch in enumerate(batches, start=1):
                self.logger.info(
                    f"Running {self.name} batch {number}/{len(batches)} ({len(batch)} items)"
                )
                results.extend(await asyncio.gather(*(bounded(item) for item in batch)))

                if number < len(batches) and self.batch_delay > 0:
                    await self._sleep(self.batch_delay)

        return results
