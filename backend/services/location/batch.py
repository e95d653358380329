"""
Batch Geocoding

Resolves many place names against rate-limited public geocoders:
    - names are split into consecutive chunks of batch_size
    - each chunk fans out concurrently, and is awaited as a whole
    - sleep inter_batch_delay between chunks (not after the last)

One name failing never aborts its chunk or later chunks.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from .types import Coordinate

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 30
DEFAULT_BATCH_DELAY = 2.0  # seconds

ProgressCallback = Callable[[int, int, int], None]  # (done, total, succeeded)


def chunked(items: Sequence[str], size: int) -> List[Sequence[str]]:
    if size < 1:
        raise ValueError(f"batch_size must be >= 1, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def resolve_all(
    resolver,
    names: Sequence[str],
    batch_size: int = DEFAULT_BATCH_SIZE,
    inter_batch_delay: float = DEFAULT_BATCH_DELAY,
    on_progress: Optional[ProgressCallback] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    weights: Optional[Mapping[str, int]] = None,
) -> Dict[str, Optional[Coordinate]]:
    """
    Resolve every name with resolver.resolve().

    Returns {name: Coordinate or None}. Names should be unique;
    a repeated name is looked up again and the last answer kept.

    weights maps a name to how many records it stands for; succeeded in
    on_progress counts those records instead of names (default 1 each).
    """
    names = list(names)
    batches = chunked(names, batch_size)
    results: Dict[str, Optional[Coordinate]] = {}
    total = len(names)
    done = 0
    succeeded = 0

    if total:
        logger.info(
            f"Batch geocoding {total} names in {len(batches)} batches "
            f"of up to {batch_size}"
        )

    for i, batch in enumerate(batches):
        outcomes = await asyncio.gather(
            *(resolver.resolve(name) for name in batch),
            return_exceptions=True,
        )

        for name, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome  # cancellation
            if isinstance(outcome, Exception):
                logger.error(f"Geocoding '{name}' raised: {outcome}")
                outcome = None
            results[name] = outcome
            if outcome is not None:
                succeeded += weights.get(name, 1) if weights else 1

        done += len(batch)
        logger.info(f"Geocoding progress: {done}/{total} ({succeeded} successful)")
        if on_progress:
            on_progress(done, total, succeeded)

        if i < len(batches) - 1:
            await sleep(inter_batch_delay)

    return results
