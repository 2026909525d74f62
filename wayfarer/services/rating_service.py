"""
Place rating aggregation.

`Place.average_rating` is derived from the place's reviews. Every review write
runs inside `place_rating_lock(place_id)` and calls `recompute_place_rating`
before committing, so writers for the same place are serialized within this
process. Separate processes can still interleave between reading the reviews
and writing the average.
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Place, Review

logger = logging.getLogger(__name__)

# Entries disappear once no writer holds or waits on the lock
_place_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


@asynccontextmanager
async def place_rating_lock(place_id: int):
    lock = _place_locks.get(place_id)
    if lock is None:
        lock = asyncio.Lock()
        _place_locks[place_id] = lock
    async with lock:
        yield


async def compute_average_rating(db: AsyncSession, place_id: int) -> Optional[float]:
    """Mean of the place's review ratings, or None when it has no reviews."""
    average = await db.scalar(
        select(func.avg(Review.rating)).where(Review.place_id == place_id)
    )
    return float(average) if average is not None else None


async def recompute_place_rating(db: AsyncSession, place_id: int) -> Optional[float]:
    """
    Store the current review average on the place.

    Runs in the caller's transaction; the caller commits. Pending review
    changes are flushed first so the aggregate sees them.
    """
    await db.flush()
    average = await compute_average_rating(db, place_id)
    await db.execute(
        update(Place)
        .where(Place.id == place_id)
        .values(average_rating=average)
    )
    logger.info(f"Recomputed rating place_id={place_id} average={average}")
    return average
