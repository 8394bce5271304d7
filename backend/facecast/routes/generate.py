"""
Generation triggers.

POST /generate-video  runs the provider call inside the request, bounded by
                      GENERATION_TIMEOUT_SECONDS, and settles the row.
POST /generate        submits to the provider queue with a callback URL and
                      returns at once; /fal-webhook settles the row later.
"""
import time
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..db import get_db
from ..deps import get_blob_store, get_http, get_mailer, get_video_provider
from ..exceptions import FacecastBaseException, GenerationFailedError, GenerationNotFoundError, ProviderError
from ..inference.fal_runner import FalVideoClient, build_webhook_url
from ..logger import logger
from ..models import Generation, GenerationStatus
from ..schemas import GenerateQueuedResponse, GenerateVideoRequest, GenerateVideoResponse, WebhookReceipt
from ..services import lifecycle
from ..services.completion import settle_generation
from ..services.error_objects import provider_error_message, to_error_object
from ..services.notifications import Mailer
from ..services.outcome import ProviderOutcome, outcome_from_payload
from ..storage import BlobStore

router = APIRouter(tags=["Generate"])

def _provider_failure(provider: FalVideoClient, exc: ProviderError) -> ProviderOutcome:
    return ProviderOutcome(
        error_message=provider_error_message({
            "kind": "provider_error",
            "code": exc.code,
            "provider": "fal",
            "model": provider.model,
            "summary": exc.message,
        })
    )

def _raise_if_failed(generation: Optional[Generation], generation_id: int) -> Generation:
    if generation is None:
        raise GenerationNotFoundError(generation_id)
    if generation.status != GenerationStatus.COMPLETED.value:
        message = to_error_object(generation.error_message or lifecycle.DEFAULT_FAILURE_MESSAGE)["message"]
        raise GenerationFailedError(generation_id, message)
    return generation

async def _begin(db: AsyncSession, request: GenerateVideoRequest, run_id: str) -> Generation:
    generation = await lifecycle.begin_generation(
        db,
        request.generationId,
        run_id,
        source_video_url=request.videoUrl,
        character_image_url=request.characterImageUrl,
        user_email=str(request.userEmail) if request.sendEmail and request.userEmail else None,
    )
    if generation is None:
        raise GenerationNotFoundError(request.generationId)
    return generation

@router.post("/generate-video", response_model=GenerateVideoResponse)
async def generate_video(
    request: GenerateVideoRequest,
    db: AsyncSession = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_http),
    provider: FalVideoClient = Depends(get_video_provider),
    blob_store: BlobStore = Depends(get_blob_store),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Run a generation to completion within this request.
    """
    generation_id = request.generationId
    start_time = time.time()

    generation = await _begin(db, request, f"direct-{generation_id}")
    if lifecycle.is_terminal(generation.status):
        generation = _raise_if_failed(generation, generation_id)
        return GenerateVideoResponse(generationId=generation_id, videoUrl=generation.video_url)

    logger.info(
        f"Starting generation {generation_id}",
        extra={"generation_id": generation_id, "timeout_s": settings.GENERATION_TIMEOUT_SECONDS},
    )

    try:
        try:
            body = await provider.generate(
                request.videoUrl, request.characterImageUrl, timeout=settings.GENERATION_TIMEOUT_SECONDS
            )
            outcome = outcome_from_payload(body)
        except ProviderError as e:
            outcome = _provider_failure(provider, e)

        generation = await settle_generation(
            db,
            generation_id,
            outcome,
            http=http,
            blob_store=blob_store,
            mailer=mailer,
            download_timeout=settings.ASSET_DOWNLOAD_TIMEOUT_SECONDS,
        )
    except FacecastBaseException as e:
        await lifecycle.fail_generation(db, generation_id, e.message)
        raise GenerationFailedError(generation_id, e.message)
    finally:
        elapsed = time.time() - start_time
        logger.info(
            f"Generation {generation_id} finished",
            extra={"generation_id": generation_id, "elapsed_ms": round(elapsed * 1000, 2)},
        )

    generation = _raise_if_failed(generation, generation_id)
    return GenerateVideoResponse(generationId=generation_id, videoUrl=generation.video_url)

@router.post("/generate", response_model=GenerateQueuedResponse)
async def generate_queued(
    request: GenerateVideoRequest,
    db: AsyncSession = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_http),
    provider: FalVideoClient = Depends(get_video_provider),
    blob_store: BlobStore = Depends(get_blob_store),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Submit a generation to the provider queue; completion arrives on /fal-webhook.
    """
    generation_id = request.generationId
    generation = await _begin(db, request, f"queued-{generation_id}")
    if lifecycle.is_terminal(generation.status):
        _raise_if_failed(generation, generation_id)
        return GenerateQueuedResponse(
            generationId=generation_id, runId=generation.run_id or "", message="Video already generated"
        )

    webhook_url = build_webhook_url(settings.PUBLIC_BASE_URL, generation_id)
    try:
        submitted = await provider.submit(request.videoUrl, request.characterImageUrl, webhook_url=webhook_url)
    except ProviderError as e:
        submitted = None
        outcome = _provider_failure(provider, e)
    except httpx.HTTPError as e:
        submitted = None
        outcome = _provider_failure(provider, ProviderError(f"Provider request failed: {type(e).__name__}: {e}"))
    else:
        outcome = outcome_from_payload(submitted) if submitted.get("status") == "ERROR" else None

    if outcome is not None:
        generation = await settle_generation(
            db, generation_id, outcome, http=http, blob_store=blob_store, mailer=mailer
        )
        _raise_if_failed(generation, generation_id)

    run_id = submitted.get("request_id") or f"queued-{generation_id}"
    await lifecycle.begin_generation(db, generation_id, run_id)
    logger.info("Generation queued", extra={"generation_id": generation_id, "run_id": run_id})
    return GenerateQueuedResponse(generationId=generation_id, runId=run_id, message="Video generation started")

@router.post("/fal-webhook", response_model=WebhookReceipt)
async def fal_webhook(
    request: Request,
    generationId: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_http),
    blob_store: BlobStore = Depends(get_blob_store),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Legacy provider callback. Answers 200 once the id is valid so the
    provider does not keep retrying; the row records what went wrong.
    """
    if not generationId or not generationId.isdigit():
        logger.error("fal-webhook called without a valid generationId")
        raise HTTPException(status_code=400, detail="Missing generationId")
    generation_id = int(generationId)

    try:
        body = await request.json()
    except ValueError:
        body = None

    outcome = outcome_from_payload(body)
    logger.info(
        f"fal-webhook received for generation {generation_id}",
        extra={
            "generation_id": generation_id,
            "request_id": outcome.request_id,
            "failed": outcome.failed,
        },
    )

    generation = await settle_generation(
        db,
        generation_id,
        outcome,
        http=http,
        blob_store=blob_store,
        mailer=mailer,
        download_timeout=settings.ASSET_DOWNLOAD_TIMEOUT_SECONDS,
    )
    if generation is None:
        return WebhookReceipt(status="not_found")
    return WebhookReceipt(
        status=generation.status,
        videoUrl=generation.video_url,
        error=generation.error_message,
    )

@router.get("/fal-webhook")
async def fal_webhook_verify():
    """Webhook verification"""
    return {"status": "ok"}
