import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any


async def run_in_batches(
    items: Sequence[Any],
    fn: Callable[[Any], Awaitable[Any]],
    batch_size: int,
) -> list[Any]:
    """Run ``fn`` over items, ``batch_size`` at a time.

    Batch b+1 is not started until every call in batch b has settled.
    Results keep the input order. ``fn`` owns its own error handling;
    an exception escaping it propagates to the caller.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    results: list[Any] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        results.extend(await asyncio.gather(*(fn(item) for item in batch)))
    return results
