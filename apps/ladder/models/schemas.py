"""
Pydantic models for API request/response validation.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class PlayerResponse(BaseModel):
    """A registered player with running totals."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    rating: int
    matches_played: int
    matches_won: int
    matches_lost: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreatePlayerRequest(BaseModel):
    """Request to register a player. Blank names are rejected by the service."""

    name: Optional[str] = None


class MatchResponse(BaseModel):
    """A recorded match with participant names."""

    id: int
    player1_id: int
    player2_id: int
    player1_name: str
    player2_name: str
    player1_score: int
    player2_score: int
    winner_id: int
    winner_name: str
    player1_elo_change: int
    player2_elo_change: int
    played_at: Optional[str] = None
    created_at: Optional[str] = None


class CreateMatchRequest(BaseModel):
    """
    Request to record a match.

    winner_id is optional; when given it must agree with the scores.
    played_at defaults to the time of submission.
    """

    player1_id: int
    player2_id: int
    player1_score: int
    player2_score: int
    winner_id: Optional[int] = None
    played_at: Optional[datetime] = None


class AwardResponse(BaseModel):
    """A stored monthly award."""

    id: int
    player_id: int
    category: str
    month: int
    year: int
    month_name: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AwardRowRequest(BaseModel):
    """One award row to upsert."""

    player_id: int
    category: str
    month: int
    year: int
    month_name: str


class SaveAwardsRequest(BaseModel):
    """Request body for POST /api/monthly-awards."""

    awards: Optional[List[AwardRowRequest]] = None


class PlayerDetailResponse(BaseModel):
    """Player profile with history and awards."""

    player: PlayerResponse
    matches: List[MatchResponse]
    awards: List[AwardResponse]
    awards_by_month: Dict[str, List[AwardResponse]]


class HealthResponse(BaseModel):
    status: str
    message: str
