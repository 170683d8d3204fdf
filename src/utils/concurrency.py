"""Concurrency primitives for the async stages of the ingestion pipeline.

Two helpers are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with each awaitable wrapped in
   a semaphore acquire/release, so at most N embedding calls are in flight.

2. **batched** -- splits a sequence into fixed-size chunks.  Embedding and
   persistence both work batch by batch with a pause in between to stay
   under provider rate limits.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Sequence, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    limit: int = 5,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore shared with other callers.  When omitted a fresh
        semaphore of size ``limit`` is created for this call only.
    limit:
        Maximum concurrency when no semaphore is supplied.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(max(1, limit))

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


def batched(items: Sequence[_T], size: int) -> list[list[_T]]:
    """Split *items* into consecutive lists of at most *size* elements."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
