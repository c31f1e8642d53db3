"""
SQLAlchemy ORM models for the ping-pong ladder.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ladder.database.db import Base
from ladder.utils.constants import INITIAL_RATING
from ladder.utils.datetime_utils import utcnow


class Player(Base):
    """Registered players and their running totals."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    rating = Column(Integer, nullable=False, default=INITIAL_RATING, server_default=str(INITIAL_RATING))
    matches_played = Column(Integer, nullable=False, default=0, server_default="0")
    matches_won = Column(Integer, nullable=False, default=0, server_default="0")
    matches_lost = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    awards = relationship("MonthlyAward", back_populates="player")

    __table_args__ = (
        CheckConstraint("matches_played >= 0 AND matches_won >= 0 AND matches_lost >= 0", name="ck_players_counts"),
        CheckConstraint("matches_played = matches_won + matches_lost", name="ck_players_played_total"),
        Index("idx_players_rating", "rating"),
    )


# Names are unique regardless of case ("alice" collides with "Alice")
Index("uq_players_name_lower", func.lower(Player.__table__.c.name), unique=True)


class Match(Base):
    """A single game between two players. Immutable once recorded."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player1_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player2_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player1_score = Column(Integer, nullable=False)
    player2_score = Column(Integer, nullable=False)
    winner_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player1_elo_change = Column(Integer, nullable=False, default=0)
    player2_elo_change = Column(Integer, nullable=False, default=0)
    played_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])
    winner = relationship("Player", foreign_keys=[winner_id])

    __table_args__ = (
        CheckConstraint("player1_id <> player2_id", name="ck_matches_distinct_players"),
        CheckConstraint("player1_score >= 0 AND player2_score >= 0", name="ck_matches_scores_non_negative"),
        CheckConstraint("player1_score <> player2_score", name="ck_matches_no_draw"),
        CheckConstraint("winner_id = player1_id OR winner_id = player2_id", name="ck_matches_winner_participant"),
        CheckConstraint("player1_elo_change = -player2_elo_change", name="ck_matches_zero_sum"),
        Index("idx_matches_played_at", "played_at"),
        Index("idx_matches_player1", "player1_id"),
        Index("idx_matches_player2", "player2_id"),
    )


class MonthlyAward(Base):
    """Winner of one award category for one calendar month."""

    __tablename__ = "monthly_awards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    category = Column(String, nullable=False)
    month = Column(Integer, nullable=False)  # 1-indexed
    year = Column(Integer, nullable=False)
    month_name = Column(String, nullable=False)  # e.g. "August"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    player = relationship("Player", back_populates="awards")

    __table_args__ = (
        UniqueConstraint("player_id", "category", "month", "year", name="uq_monthly_awards_player_category_month"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_monthly_awards_month"),
        Index("idx_monthly_awards_period", "year", "month"),
    )


class Setting(Base):
    """Application key/value settings (also holds job markers)."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
