"""Player list, create and detail route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.api.routes import limiter, WRITE_RATE_LIMIT
from ladder.database.db import get_db_session
from ladder.models.schemas import CreatePlayerRequest, PlayerDetailResponse, PlayerResponse
from ladder.services import data_service
from ladder.services.snapshot_cache import get_snapshot_cache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/players")
async def list_players(session: AsyncSession = Depends(get_db_session)):
    """All players, highest rating first."""
    try:
        return await data_service.list_players(session)
    except Exception as e:
        logger.error(f"Error loading players: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading players: {str(e)}")


@router.post("/api/players", status_code=201, response_model=PlayerResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_player(
    request: Request,
    payload: CreatePlayerRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Register a player with the starting rating.

    Returns 400 for a blank name and 409 when the name is taken.
    """
    try:
        player = await data_service.create_player(session, payload.name)
        get_snapshot_cache().invalidate()
        return player
    except data_service.DuplicatePlayerError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except data_service.PlayerValidationError as e:
        logger.warning(f"Rejected player: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating player: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating player: {str(e)}")


@router.get("/api/players/{player_id}", response_model=PlayerDetailResponse)
async def get_player(player_id: int, session: AsyncSession = Depends(get_db_session)):
    """Player profile with match history and awards grouped by month."""
    try:
        detail = await data_service.get_player_detail(session, player_id)
        if detail is None:
            raise HTTPException(status_code=404, detail=f"Player {player_id} not found")
        return detail
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error loading player {player_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading player: {str(e)}")
