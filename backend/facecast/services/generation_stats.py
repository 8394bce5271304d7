from __future__ import annotations

from statistics import median
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Generation, GenerationStatus


STATS_SAMPLE_SIZE = 100


def median_completion_seconds(durations: Iterable[float]) -> Optional[float]:
    """Median of positive durations, or None when there is nothing to measure."""
    values = [float(d) for d in durations if d is not None and d > 0]
    if not values:
        return None
    return round(median(values), 1)


async def recent_completion_durations(db: AsyncSession, sample_size: int = STATS_SAMPLE_SIZE) -> list:
    result = await db.execute(
        select(Generation.created_at, Generation.completed_at)
        .where(
            Generation.status == GenerationStatus.COMPLETED.value,
            Generation.completed_at.is_not(None),
            Generation.created_at.is_not(None),
        )
        .order_by(Generation.completed_at.desc())
        .limit(sample_size)
    )
    return [(completed - created).total_seconds() for created, completed in result.all()]
