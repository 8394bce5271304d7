from __future__ import annotations

import asyncio
import time
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import FacecastBaseException
from ..logger import logger
from ..models import Generation, GenerationStatus
from ..storage import BlobStore, fetch_remote
from .lifecycle import complete_generation, fail_generation, get_generation, is_terminal
from .notifications import Mailer, notify_generation_complete
from .outcome import ProviderOutcome


def result_asset_key(generation_id: int, request_id: Optional[str] = None) -> str:
    if request_id:
        return f"generations/{request_id}.mp4"
    return f"generations/{generation_id}-{int(time.time() * 1000)}.mp4"


async def settle_generation(
    db: AsyncSession,
    generation_id: int,
    outcome: ProviderOutcome,
    *,
    http: httpx.AsyncClient,
    blob_store: BlobStore,
    mailer: Optional[Mailer],
    download_timeout: float = 120.0,
) -> Optional[Generation]:
    """
    Drive a generation to its terminal state from a provider outcome.

    Shared by the direct trigger and the legacy webhook. Rows that are
    already terminal are returned untouched: no re-download, no second
    email. On success the provider video is re-hosted before the row is
    marked completed; any fetch or store error, expected or not, fails the
    row instead.
    """
    generation = await get_generation(db, generation_id)
    if generation is None:
        logger.warning("Settle requested for missing generation", extra={"generation_id": generation_id})
        return None
    if is_terminal(generation.status):
        logger.info(
            "Generation already settled",
            extra={"generation_id": generation_id, "status": generation.status},
        )
        return generation

    if outcome.failed:
        return await fail_generation(db, generation_id, outcome.error_message)

    try:
        video_bytes = await fetch_remote(http, outcome.video_url, timeout=download_timeout)
        key = result_asset_key(generation_id, outcome.request_id)
        durable_url = await asyncio.to_thread(blob_store.put_bytes, key, video_bytes, "video/mp4")
    except FacecastBaseException as e:
        logger.error(
            f"Failed to re-host generated video: {e.message}",
            extra={"generation_id": generation_id, "provider_url": outcome.video_url},
        )
        return await fail_generation(db, generation_id, e.message)
    except Exception as e:
        logger.exception(
            f"Unexpected error while re-hosting generated video: {type(e).__name__}",
            extra={"generation_id": generation_id, "provider_url": outcome.video_url},
        )
        return await fail_generation(db, generation_id, f"Failed to store generated video: {type(e).__name__}")

    generation = await complete_generation(db, generation_id, durable_url)
    if generation is not None and generation.status == GenerationStatus.COMPLETED.value:
        await notify_generation_complete(mailer, generation)
    return generation
