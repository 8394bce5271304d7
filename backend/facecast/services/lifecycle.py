from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..logger import logger
from ..models import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Generation,
    GenerationStatus,
)


DEFAULT_FAILURE_MESSAGE = "Processing failed"


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


async def _load(db: AsyncSession, generation_id: int) -> Optional[Generation]:
    result = await db.execute(
        select(Generation)
        .where(Generation.id == generation_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _transition(
    db: AsyncSession,
    generation_id: int,
    *,
    from_statuses: Sequence[str],
    values: dict,
) -> bool:
    """
    Apply `values` to one row only while its status is in `from_statuses`.

    A single conditional UPDATE, so the status check and the write are atomic
    per statement; returns whether the row moved.
    """
    result = await db.execute(
        update(Generation)
        .where(Generation.id == generation_id, Generation.status.in_(from_statuses))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0


async def create_generation(
    db: AsyncSession,
    *,
    user_id: str,
    character_name: Optional[str] = None,
    character_image_url: Optional[str] = None,
    aspect_ratio: str = "fill",
    source_video_aspect_ratio: str = "fill",
    user_email: Optional[str] = None,
) -> Generation:
    generation = Generation(
        user_id=user_id,
        user_email=user_email,
        status=GenerationStatus.PENDING.value,
        character_name=character_name,
        character_image_url=character_image_url,
        aspect_ratio=aspect_ratio or "fill",
        source_video_aspect_ratio=source_video_aspect_ratio or "fill",
    )
    db.add(generation)
    await db.commit()
    await db.refresh(generation)
    logger.info(
        "Generation created",
        extra={"generation_id": generation.id, "user_id": user_id, "status": generation.status},
    )
    return generation


async def begin_generation(
    db: AsyncSession,
    generation_id: int,
    run_id: str,
    *,
    source_video_url: Optional[str] = None,
    character_image_url: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Optional[Generation]:
    """Mark a generation as processing and record its run id.

    Terminal rows are returned unchanged; a missing row yields None.
    """
    values = {"status": GenerationStatus.PROCESSING.value, "run_id": run_id}
    if source_video_url:
        values["source_video_url"] = source_video_url
    if character_image_url:
        values["character_image_url"] = character_image_url
    if user_email:
        values["user_email"] = user_email

    moved = await _transition(db, generation_id, from_statuses=ACTIVE_STATUSES, values=values)
    generation = await _load(db, generation_id)
    if generation is None:
        logger.warning("Begin requested for missing generation", extra={"generation_id": generation_id})
        return None
    if not moved:
        logger.warning(
            "Begin ignored, generation already terminal",
            extra={"generation_id": generation_id, "status": generation.status},
        )
    else:
        logger.info("Generation processing", extra={"generation_id": generation_id, "run_id": run_id})
    return generation


async def complete_generation(db: AsyncSession, generation_id: int, result_url: str) -> Optional[Generation]:
    moved = await _transition(
        db,
        generation_id,
        from_statuses=ACTIVE_STATUSES,
        values={
            "status": GenerationStatus.COMPLETED.value,
            "video_url": result_url,
            "error_message": None,
            "completed_at": func.now(),
        },
    )
    generation = await _load(db, generation_id)
    if generation is None:
        logger.warning("Completion for missing generation", extra={"generation_id": generation_id})
        return None
    if moved:
        logger.info("Generation completed", extra={"generation_id": generation_id, "video_url": result_url})
    elif generation.status == GenerationStatus.FAILED.value:
        logger.warning(
            "Completion refused, generation already failed",
            extra={"generation_id": generation_id},
        )
    return generation


async def fail_generation(
    db: AsyncSession, generation_id: int, message: Optional[str] = None
) -> Optional[Generation]:
    error_message = message or DEFAULT_FAILURE_MESSAGE
    moved = await _transition(
        db,
        generation_id,
        from_statuses=ACTIVE_STATUSES,
        values={
            "status": GenerationStatus.FAILED.value,
            "error_message": error_message,
            "video_url": None,
            "completed_at": func.now(),
        },
    )
    generation = await _load(db, generation_id)
    if generation is None:
        logger.warning("Failure for missing generation", extra={"generation_id": generation_id})
        return None
    if moved:
        logger.info(
            "Generation failed",
            extra={"generation_id": generation_id, "error_message": error_message},
        )
    else:
        logger.warning(
            "Failure ignored, generation already terminal",
            extra={"generation_id": generation_id, "status": generation.status},
        )
    return generation


async def get_generation(db: AsyncSession, generation_id: int) -> Optional[Generation]:
    return await _load(db, generation_id)


async def get_owned_generation(
    db: AsyncSession, generation_id: int, owner_user_id: str
) -> Optional[Generation]:
    result = await db.execute(
        select(Generation)
        .where(Generation.id == generation_id, Generation.user_id == owner_user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_generations(db: AsyncSession, user_id: str, limit: int = 50) -> List[Generation]:
    result = await db.execute(
        select(Generation)
        .where(Generation.user_id == user_id)
        .order_by(Generation.created_at.desc(), Generation.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def delete_generation(db: AsyncSession, generation_id: int, owner_user_id: str) -> bool:
    """Remove a generation owned by the caller. Does not stop an in-flight provider job."""
    result = await db.execute(
        delete(Generation)
        .where(Generation.id == generation_id, Generation.user_id == owner_user_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    deleted = result.rowcount > 0
    logger.info(
        "Generation delete",
        extra={"generation_id": generation_id, "user_id": owner_user_id, "deleted": deleted},
    )
    return deleted
