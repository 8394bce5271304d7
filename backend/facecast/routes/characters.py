"""
Community characters - submissions, moderation, approved list, usage counts
"""
from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ..auth import Owner, get_session_user_optional, anonymous_owner
from ..config import settings
from ..db import get_db
from ..exceptions import SubmissionNotFoundError, UnauthorizedError
from ..logger import logger
from ..models import CharacterSubmission, CharacterUsage, SubmissionStatus
from ..schemas import (
    ApprovedCharacter,
    ApprovedCharactersResponse,
    CharacterUsageRequest,
    CharacterUsageResponse,
    DeleteSubmissionRequest,
    ModerateSubmissionRequest,
    SubmissionListResponse,
    SubmissionOut,
    SubmitCharacterRequest,
    SuccessResponse,
)

router = APIRouter(tags=["Characters"])

async def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    if not settings.ADMIN_API_KEY or x_admin_key != settings.ADMIN_API_KEY:
        raise UnauthorizedError("Admin key required")

def _submission_to_out(submission: CharacterSubmission) -> SubmissionOut:
    return SubmissionOut(
        id=submission.id,
        image_url=submission.image_url,
        suggested_name=submission.suggested_name,
        suggested_category=submission.suggested_category,
        user_id=submission.user_id,
        status=submission.status,
        created_at=submission.created_at,
    )

@router.post("/submit-character", response_model=SuccessResponse)
async def submit_character(
    request: SubmitCharacterRequest,
    current_user: Optional[Owner] = Depends(get_session_user_optional),
    x_anonymous_user_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Queue a character for moderation"""
    owner = current_user or anonymous_owner(x_anonymous_user_id)
    submission = CharacterSubmission(
        image_url=request.imageUrl,
        suggested_name=request.name,
        suggested_category=request.category,
        user_id=owner.user_id if owner else None,
        status=SubmissionStatus.PENDING.value,
    )
    db.add(submission)
    await db.commit()
    logger.info("Character submitted", extra={"user_id": submission.user_id})
    return SuccessResponse()

@router.get("/approved-characters", response_model=ApprovedCharactersResponse)
async def list_approved_characters(db: AsyncSession = Depends(get_db)):
    """Approved submissions, visible to everyone"""
    result = await db.execute(
        select(CharacterSubmission)
        .where(CharacterSubmission.status == SubmissionStatus.APPROVED.value)
        .order_by(CharacterSubmission.created_at.desc(), CharacterSubmission.id.desc())
    )
    return ApprovedCharactersResponse(
        characters=[
            ApprovedCharacter(
                id=s.id,
                image_url=s.image_url,
                suggested_name=s.suggested_name,
                suggested_category=s.suggested_category,
            )
            for s in result.scalars().all()
        ]
    )

@router.post("/character-usage", response_model=SuccessResponse)
async def track_character_usage(
    request: CharacterUsageRequest,
    db: AsyncSession = Depends(get_db),
):
    character_id = str(request.characterId).strip()
    if not character_id:
        raise HTTPException(status_code=400, detail="characterId is required")

    result = await db.execute(
        update(CharacterUsage)
        .where(CharacterUsage.character_id == character_id)
        .values(usage_count=CharacterUsage.usage_count + 1, last_used_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(CharacterUsage(character_id=character_id, usage_count=1))
    await db.commit()
    return SuccessResponse()

@router.get("/character-usage", response_model=CharacterUsageResponse)
async def get_character_usage(response: Response, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(CharacterUsage.character_id, CharacterUsage.usage_count)
        .order_by(CharacterUsage.usage_count.desc())
    )
    response.headers["Cache-Control"] = "public, max-age=300, stale-while-revalidate=3600"
    return CharacterUsageResponse(usage={character_id: count for character_id, count in result.all()})

@router.get("/admin/submissions", response_model=SubmissionListResponse, dependencies=[Depends(require_admin)])
async def list_submissions(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(CharacterSubmission)
        .order_by(CharacterSubmission.created_at.desc(), CharacterSubmission.id.desc())
    )
    return SubmissionListResponse(submissions=[_submission_to_out(s) for s in result.scalars().all()])

@router.patch("/admin/submissions", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def moderate_submission(
    request: ModerateSubmissionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject; name/category overrides are optional"""
    values = {"status": request.status}
    if request.name:
        values["suggested_name"] = request.name
    if request.category:
        values["suggested_category"] = request.category

    result = await db.execute(
        update(CharacterSubmission)
        .where(CharacterSubmission.id == request.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount == 0:
        raise SubmissionNotFoundError(request.id)

    logger.info(f"Submission {request.id} {request.status}")
    return SuccessResponse()

@router.delete("/admin/submissions", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def delete_submission(
    request: DeleteSubmissionRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        delete(CharacterSubmission)
        .where(CharacterSubmission.id == request.id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount == 0:
        raise SubmissionNotFoundError(request.id)
    return SuccessResponse()
