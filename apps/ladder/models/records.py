"""
In-memory records used by the rating and award calculations.

These mirror the ORM rows so the calculation code never touches a
database session.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ladder.utils.constants import INITIAL_RATING


@dataclass(frozen=True)
class PlayerRecord:
    """A player as seen by the calculations."""

    id: int
    name: str
    rating: int = INITIAL_RATING
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Player name must not be empty")
        if min(self.matches_played, self.matches_won, self.matches_lost) < 0:
            raise ValueError("Match counters must be non-negative")

    @property
    def win_rate(self) -> float:
        """Calculate overall win rate."""
        if self.matches_played == 0:
            return 0.0
        return self.matches_won / self.matches_played


@dataclass(frozen=True)
class MatchRecord:
    """A recorded match with its stored rating deltas."""

    id: int
    player1_id: int
    player2_id: int
    player1_score: int
    player2_score: int
    winner_id: int
    player1_elo_change: int = 0
    player2_elo_change: int = 0
    played_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.player1_score < 0 or self.player2_score < 0:
            raise ValueError("Scores must be non-negative")
        if self.winner_id not in (self.player1_id, self.player2_id):
            raise ValueError(f"Winner {self.winner_id} did not play in match {self.id}")

    @property
    def timestamp(self) -> Optional[datetime]:
        """When the match was played, falling back to when it was recorded."""
        return self.played_at or self.created_at

    def involves(self, player_id: int) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def score_for(self, player_id: int) -> int:
        return self.player1_score if player_id == self.player1_id else self.player2_score

    def elo_change_for(self, player_id: int) -> int:
        return self.player1_elo_change if player_id == self.player1_id else self.player2_elo_change

    def opponent_of(self, player_id: int) -> int:
        return self.player2_id if player_id == self.player1_id else self.player1_id


@dataclass(frozen=True)
class ValidatedMatch:
    """Match input that passed validation, with the derived winner."""

    player1_id: int
    player2_id: int
    player1_score: int
    player2_score: int
    winner_id: int


@dataclass(frozen=True)
class AwardRow:
    """One monthly award row, ready to be upserted."""

    player_id: int
    category: str
    month: int
    year: int
    month_name: str

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "category": self.category,
            "month": self.month,
            "year": self.year,
            "month_name": self.month_name,
        }

