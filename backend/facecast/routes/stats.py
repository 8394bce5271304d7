from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..schemas import GenerationStatsResponse
from ..services.generation_stats import median_completion_seconds, recent_completion_durations

router = APIRouter(tags=["Stats"])

@router.get("/generation-stats", response_model=GenerationStatsResponse)
async def generation_stats(response: Response, db: AsyncSession = Depends(get_db)):
    """Median time from creation to completion, for progress estimates"""
    durations = await recent_completion_durations(db)
    response.headers["Cache-Control"] = "public, max-age=300"
    return GenerationStatsResponse(medianDurationSeconds=median_completion_seconds(durations))
