"""
Generation routes - list, create, client-reported failure, delete
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Owner, resolve_owner
from ..config import settings
from ..db import get_db
from ..exceptions import GenerationNotFoundError, InvalidStatusTransitionError
from ..logger import logger
from ..models import Generation, GenerationStatus
from ..schemas import (
    CreateGenerationRequest,
    CreateGenerationResponse,
    GenerationErrorObject,
    GenerationListResponse,
    GenerationOut,
    SuccessResponse,
    UpdateGenerationRequest,
)
from ..services import lifecycle
from ..services.error_objects import to_error_object

router = APIRouter(prefix="/generations", tags=["Generations"])

def _generation_to_out(generation: Generation) -> GenerationOut:
    """Convert Generation model to its API schema, with a structured error"""
    error = None
    if generation.error_message is not None:
        error = GenerationErrorObject(**to_error_object(generation.error_message))
    return GenerationOut(
        id=generation.id,
        user_id=generation.user_id,
        user_email=generation.user_email,
        status=generation.status,
        character_name=generation.character_name,
        character_image_url=generation.character_image_url,
        source_video_url=generation.source_video_url,
        aspect_ratio=generation.aspect_ratio,
        source_video_aspect_ratio=generation.source_video_aspect_ratio,
        run_id=generation.run_id,
        video_url=generation.video_url,
        error_message=generation.error_message,
        error=error,
        created_at=generation.created_at,
        updated_at=generation.updated_at,
        completed_at=generation.completed_at,
    )

@router.get("", response_model=GenerationListResponse)
async def list_generations(
    response: Response,
    owner: Owner = Depends(resolve_owner),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's generations, newest first"""
    generations = await lifecycle.list_generations(db, owner.user_id, limit=settings.GENERATIONS_LIST_LIMIT)
    response.headers["Cache-Control"] = "private, max-age=0, stale-while-revalidate=10"
    return GenerationListResponse(generations=[_generation_to_out(g) for g in generations])

@router.post("", response_model=CreateGenerationResponse)
async def create_pending_generation(
    request: CreateGenerationRequest,
    owner: Owner = Depends(resolve_owner),
    db: AsyncSession = Depends(get_db),
):
    """Create a pending generation before the upload starts"""
    generation = await lifecycle.create_generation(
        db,
        user_id=owner.user_id,
        character_name=request.characterName,
        character_image_url=request.characterImageUrl,
        aspect_ratio=request.aspectRatio or "fill",
        source_video_aspect_ratio=request.sourceVideoAspectRatio or "fill",
        user_email=owner.email if request.notifyByEmail else None,
    )
    return CreateGenerationResponse(generationId=generation.id)

@router.patch("/{generation_id}", response_model=SuccessResponse)
async def update_generation(
    generation_id: int,
    request: UpdateGenerationRequest,
    owner: Owner = Depends(resolve_owner),
    db: AsyncSession = Depends(get_db),
):
    """Client-reported failure; the only status a client may set"""
    generation = await lifecycle.get_owned_generation(db, generation_id, owner.user_id)
    if generation is None:
        raise GenerationNotFoundError(generation_id)

    if request.status != GenerationStatus.FAILED.value:
        raise InvalidStatusTransitionError(generation_id, request.status)

    await lifecycle.fail_generation(db, generation_id, request.errorMessage)
    logger.info(
        "Generation marked failed by client",
        extra={"generation_id": generation_id, "user_id": owner.user_id},
    )
    return SuccessResponse()

@router.delete("/{generation_id}", response_model=SuccessResponse)
async def delete_generation(
    generation_id: int,
    owner: Owner = Depends(resolve_owner),
    db: AsyncSession = Depends(get_db),
):
    """Remove a generation row; an in-flight provider job keeps running"""
    deleted = await lifecycle.delete_generation(db, generation_id, owner.user_id)
    if not deleted:
        raise GenerationNotFoundError(generation_id)
    return SuccessResponse()
