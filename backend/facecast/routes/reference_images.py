"""
Reference image routes - a signed-in user's saved custom characters
"""
from fastapi import APIRouter, Depends
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Owner, get_session_user
from ..db import get_db
from ..exceptions import ReferenceImageNotFoundError
from ..logger import logger
from ..models import ReferenceImage
from ..schemas import (
    CreateReferenceImageRequest,
    CreateReferenceImageResponse,
    ReferenceImageListResponse,
    ReferenceImageOut,
    SuccessResponse,
    UpdateReferenceImageRequest,
)

router = APIRouter(prefix="/reference-images", tags=["Reference images"])

@router.get("", response_model=ReferenceImageListResponse)
async def list_reference_images(
    current_user: Owner = Depends(get_session_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ReferenceImage)
        .where(ReferenceImage.user_id == current_user.user_id)
        .order_by(ReferenceImage.created_at.desc(), ReferenceImage.id.desc())
    )
    images = result.scalars().all()
    return ReferenceImageListResponse(
        images=[
            ReferenceImageOut(
                id=img.id,
                name=img.name,
                image_url=img.image_url,
                category=img.category,
                created_at=img.created_at,
            )
            for img in images
        ]
    )

@router.post("", response_model=CreateReferenceImageResponse)
async def create_reference_image(
    request: CreateReferenceImageRequest,
    current_user: Owner = Depends(get_session_user),
    db: AsyncSession = Depends(get_db),
):
    image = ReferenceImage(
        user_id=current_user.user_id,
        name=request.name,
        image_url=request.imageUrl,
        category=request.category,
    )
    db.add(image)
    await db.commit()
    await db.refresh(image)

    logger.info(f"Reference image saved: {image.id}", extra={"user_id": current_user.user_id})
    return CreateReferenceImageResponse(id=image.id)

@router.patch("/{image_id}", response_model=SuccessResponse)
async def update_reference_image_category(
    image_id: int,
    request: UpdateReferenceImageRequest,
    current_user: Owner = Depends(get_session_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(ReferenceImage)
        .where(ReferenceImage.id == image_id, ReferenceImage.user_id == current_user.user_id)
        .values(category=request.category)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount == 0:
        raise ReferenceImageNotFoundError(image_id)
    return SuccessResponse()

@router.delete("/{image_id}", response_model=SuccessResponse)
async def delete_reference_image(
    image_id: int,
    current_user: Owner = Depends(get_session_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        delete(ReferenceImage)
        .where(ReferenceImage.id == image_id, ReferenceImage.user_id == current_user.user_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount == 0:
        raise ReferenceImageNotFoundError(image_id)

    logger.info(f"Reference image deleted: {image_id}", extra={"user_id": current_user.user_id})
    return SuccessResponse()
