"""Match list and submission route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.api.routes import limiter, WRITE_RATE_LIMIT
from ladder.database.db import get_db_session
from ladder.models.schemas import CreateMatchRequest, MatchResponse
from ladder.services import data_service, rating_service
from ladder.services.rating_service import MatchValidationError
from ladder.services.snapshot_cache import get_snapshot_cache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/matches")
async def list_matches(
    player_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Matches newest first, optionally only those of one player."""
    try:
        return await data_service.list_matches(session, player_id=player_id)
    except Exception as e:
        logger.error(f"Error loading matches: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading matches: {str(e)}")


@router.post("/api/matches", status_code=201, response_model=MatchResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_match(
    request: Request,
    payload: CreateMatchRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Record a match and update both players' ratings.

    Rating changes are always computed here; a winner_id in the body is only
    checked against the scores.
    """
    try:
        rating_service.validate_match(
            payload.player1_id, payload.player2_id,
            payload.player1_score, payload.player2_score, payload.winner_id,
        )
        match = await data_service.create_match(
            session,
            player1_id=payload.player1_id,
            player2_id=payload.player2_id,
            player1_score=payload.player1_score,
            player2_score=payload.player2_score,
            winner_id=payload.winner_id,
            played_at=payload.played_at,
        )
        get_snapshot_cache().invalidate()
        return match
    except MatchValidationError as e:
        logger.warning(f"Rejected match: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except data_service.PlayerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating match: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating match: {str(e)}")
