"""Bounded concurrent fetch: K workers drain a shared queue of blocking jobs."""
import asyncio
from typing import Callable, Optional, TypeVar

from common.errors import TransportError
from common.logger import get_logger

logger = get_logger("fetch")

T = TypeVar("T")


async def gather_bounded(jobs: list[Callable[[], T]],
                         limit: int) -> tuple[list[Optional[T]], list[tuple[int, TransportError]]]:
    """Run blocking ``jobs`` in threads, at most ``limit`` in flight.

    Each job owns one result slot (same index as the job). A job raising
    TransportError leaves its slot None and is reported in the error list;
    any other exception propagates out of the gather.
    """
    results: list[Optional[T]] = [None] * len(jobs)
    errors: list[tuple[int, TransportError]] = []
    if not jobs:
        return results, errors

    queue: asyncio.Queue = asyncio.Queue()
    for item in enumerate(jobs):
        queue.put_nowait(item)

    async def worker() -> None:
        while True:
            try:
                idx, job = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[idx] = await asyncio.to_thread(job)
            except TransportError as e:
                logger.warning(f"fetch unit {idx} failed: {e}")
                errors.append((idx, e))

    n_workers = max(1, min(limit, len(jobs)))
    await asyncio.gather(*(worker() for _ in range(n_workers)))
    return results, errors
