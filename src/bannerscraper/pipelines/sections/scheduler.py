"""
Bounded-concurrency, order-preserving async map.

A fixed pool of workers pulls (index, item) pairs from a shared queue and
writes each result into its slot of a preallocated list. A new item starts
as soon as any worker finishes, not when a whole batch does.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    items: Sequence[T],
    mapper: Callable[[T], Awaitable[R]],
    concurrency: int,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[Optional[R]]:
    """
    Run mapper over items with at most `concurrency` calls in flight.

    Args:
        items: inputs; results come back in the same order
        mapper: coroutine function applied to each item
        concurrency: ceiling on outstanding mapper calls
        progress_callback: optional callback(completed, total)

    Returns:
        One result per item. A mapper that raises leaves None in its slot
        and never stops the other workers.
    """
    total = len(items)
    results: List[Optional[R]] = [None] * total
    if total == 0:
        return results

    queue: "asyncio.Queue[int]" = asyncio.Queue()
    for index in range(total):
        queue.put_nowait(index)

    completed = 0

    async def worker() -> None:
        nonlocal completed
        while True:
            try:
                index = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[index] = await mapper(items[index])
            except Exception:
                logger.exception("Fetch for item %d (%r) failed", index, items[index])
            completed += 1
            if progress_callback:
                progress_callback(completed, total)

    workers = [asyncio.ensure_future(worker()) for _ in range(min(max(1, concurrency), total))]
    await asyncio.gather(*workers)
    return results
