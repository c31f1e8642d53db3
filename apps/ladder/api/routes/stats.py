"""Health check and dashboard statistics route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.database.db import get_db_session
from ladder.models.schemas import HealthResponse
from ladder.services import stats_service
from ladder.services.snapshot_cache import load_snapshot
from ladder.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    return {"status": "healthy", "message": "Ping-pong ladder API is running"}


@router.get("/api/stats/summary")
async def get_stats_summary(session: AsyncSession = Depends(get_db_session)):
    """Total matches with weekly trend, win rate leader, longest current streak and biggest rating swing."""
    try:
        snapshot = await load_snapshot(session)
        return stats_service.compute_summary(snapshot.players, snapshot.matches, utcnow())
    except Exception as e:
        logger.error(f"Error calculating stats: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error calculating stats: {str(e)}")
