"""
Data service layer for database operations.
Handles all CRUD operations for players, matches, monthly awards and settings.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, func, or_, and_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ladder.database.models import Player, Match, MonthlyAward, Setting
from ladder.models.records import AwardRow, MatchRecord, PlayerRecord
from ladder.services import rating_service
from ladder.utils.constants import AWARD_CATEGORIES, INITIAL_RATING
from ladder.utils.datetime_utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class PlayerValidationError(ValueError):
    """Raised when a player cannot be registered with the given data."""


class DuplicatePlayerError(PlayerValidationError):
    """Raised when a player name is already taken (case-insensitive)."""


class PlayerNotFoundError(ValueError):
    """Raised when a referenced player does not exist."""


class AwardValidationError(ValueError):
    """Raised when an award row is malformed."""


#
# Helper functions
#

def _dialect_insert(session: AsyncSession, model):
    """INSERT construct that supports ON CONFLICT for the bound database."""
    if session.bind.dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def player_to_dict(player: Player) -> Dict:
    return {
        "id": player.id,
        "name": player.name,
        "rating": player.rating,
        "matches_played": player.matches_played,
        "matches_won": player.matches_won,
        "matches_lost": player.matches_lost,
        "created_at": _isoformat(player.created_at),
        "updated_at": _isoformat(player.updated_at),
    }


def player_to_record(player: Player) -> PlayerRecord:
    return PlayerRecord(
        id=player.id,
        name=player.name,
        rating=player.rating,
        matches_played=player.matches_played,
        matches_won=player.matches_won,
        matches_lost=player.matches_lost,
    )


def match_to_record(match: Match) -> MatchRecord:
    return MatchRecord(
        id=match.id,
        player1_id=match.player1_id,
        player2_id=match.player2_id,
        player1_score=match.player1_score,
        player2_score=match.player2_score,
        winner_id=match.winner_id,
        player1_elo_change=match.player1_elo_change,
        player2_elo_change=match.player2_elo_change,
        played_at=as_utc(match.played_at),
        created_at=as_utc(match.created_at),
    )


def award_to_dict(award: MonthlyAward) -> Dict:
    return {
        "id": award.id,
        "player_id": award.player_id,
        "category": award.category,
        "month": award.month,
        "year": award.year,
        "month_name": award.month_name,
        "created_at": _isoformat(award.created_at),
        "updated_at": _isoformat(award.updated_at),
    }


def _match_query():
    """Matches joined with participant names, newest first."""
    p1 = aliased(Player)
    p2 = aliased(Player)
    winner = aliased(Player)
    return select(
        Match,
        p1.name.label("player1_name"),
        p2.name.label("player2_name"),
        winner.name.label("winner_name"),
    ).join(
        p1, Match.player1_id == p1.id
    ).join(
        p2, Match.player2_id == p2.id
    ).join(
        winner, Match.winner_id == winner.id
    ).order_by(
        Match.played_at.desc(),
        Match.id.desc()
    )


def _match_row_to_dict(row) -> Dict:
    match = row.Match
    return {
        "id": match.id,
        "player1_id": match.player1_id,
        "player2_id": match.player2_id,
        "player1_name": row.player1_name,
        "player2_name": row.player2_name,
        "player1_score": match.player1_score,
        "player2_score": match.player2_score,
        "winner_id": match.winner_id,
        "winner_name": row.winner_name,
        "player1_elo_change": match.player1_elo_change,
        "player2_elo_change": match.player2_elo_change,
        "played_at": _isoformat(match.played_at),
        "created_at": _isoformat(match.created_at),
    }


#
# Players
#

async def list_players(session: AsyncSession) -> List[Dict]:
    """All players, highest rating first."""
    result = await session.execute(
        select(Player)
        .order_by(Player.rating.desc(), Player.name.asc(), Player.id.asc())
        .execution_options(populate_existing=True)
    )
    return [player_to_dict(p) for p in result.scalars().all()]


async def get_player(session: AsyncSession, player_id: int) -> Optional[Dict]:
    player = await session.get(Player, player_id, populate_existing=True)
    return player_to_dict(player) if player else None


async def get_player_by_name(session: AsyncSession, name: str) -> Optional[Dict]:
    """Case-insensitive lookup by name."""
    result = await session.execute(
        select(Player).where(func.lower(Player.name) == name.strip().lower()).execution_options(populate_existing=True)
    )
    player = result.scalars().first()
    return player_to_dict(player) if player else None


async def create_player(session: AsyncSession, name: Optional[str]) -> Dict:
    """
    Register a new player with the initial rating and zeroed counters.

    Raises:
        PlayerValidationError: name is missing or blank
        DuplicatePlayerError: another player already has this name (any case)
    """
    if not name or not isinstance(name, str) or not name.strip():
        raise PlayerValidationError("Player name is required")
    name = name.strip()

    if await get_player_by_name(session, name):
        raise DuplicatePlayerError(f"A player named '{name}' already exists")

    player = Player(
        name=name,
        rating=INITIAL_RATING,
        matches_played=0,
        matches_won=0,
        matches_lost=0,
    )
    session.add(player)
    try:
        await session.commit()
    except IntegrityError:
        # A concurrent request registered the same name after our lookup
        await session.rollback()
        raise DuplicatePlayerError(f"A player named '{name}' already exists")
    await session.refresh(player)
    logger.info(f"Created player {player.id} ({player.name})")
    return player_to_dict(player)


async def load_player_records(session: AsyncSession) -> List[PlayerRecord]:
    result = await session.execute(
        select(Player)
        .order_by(Player.rating.desc(), Player.id.asc())
        .execution_options(populate_existing=True)
    )
    return [player_to_record(p) for p in result.scalars().all()]


#
# Matches
#

async def list_matches(session: AsyncSession, player_id: Optional[int] = None) -> List[Dict]:
    """All matches with player names, newest first; optionally one player's only."""
    query = _match_query()
    if player_id is not None:
        query = query.where(or_(Match.player1_id == player_id, Match.player2_id == player_id))
    result = await session.execute(query)
    return [_match_row_to_dict(row) for row in result.all()]


async def get_match(session: AsyncSession, match_id: int) -> Optional[Dict]:
    result = await session.execute(_match_query().where(Match.id == match_id))
    row = result.first()
    return _match_row_to_dict(row) if row else None


async def load_match_records(session: AsyncSession) -> List[MatchRecord]:
    result = await session.execute(select(Match).order_by(Match.played_at.asc(), Match.id.asc()))
    return [match_to_record(m) for m in result.scalars().all()]


async def create_match(
    session: AsyncSession,
    player1_id: int,
    player2_id: int,
    player1_score: int,
    player2_score: int,
    winner_id: Optional[int] = None,
    played_at: Optional[datetime] = None,
) -> Dict:
    """
    Record a match, compute both rating changes and update both players.

    Reads both current ratings, computes the delta and writes the match and
    both player rows in this session with a single commit. No row locks are
    taken: two concurrent submissions involving the same player can still
    overwrite each other's rating update.

    Raises:
        MatchValidationError: scores or participants break the rules
        PlayerNotFoundError: either player id is unknown
    """
    validated = rating_service.validate_match(
        player1_id, player2_id, player1_score, player2_score, winner_id
    )

    player1 = await session.get(Player, validated.player1_id, populate_existing=True)
    player2 = await session.get(Player, validated.player2_id, populate_existing=True)
    missing = [pid for pid, p in ((validated.player1_id, player1), (validated.player2_id, player2)) if p is None]
    if missing:
        raise PlayerNotFoundError(f"Player(s) not found: {', '.join(str(m) for m in missing)}")

    delta = rating_service.compute_rating_delta(
        player1.rating, player2.rating, validated.player1_score, validated.player2_score
    )

    new_match = Match(
        player1_id=validated.player1_id,
        player2_id=validated.player2_id,
        player1_score=validated.player1_score,
        player2_score=validated.player2_score,
        winner_id=validated.winner_id,
        player1_elo_change=delta,
        player2_elo_change=-delta,
        played_at=as_utc(played_at) if played_at else utcnow(),
    )
    session.add(new_match)

    for player, player_delta in ((player1, delta), (player2, -delta)):
        updated = rating_service.apply_match_result(
            player_to_record(player), player_delta, won=player.id == validated.winner_id
        )
        player.rating = updated.rating
        player.matches_played = updated.matches_played
        player.matches_won = updated.matches_won
        player.matches_lost = updated.matches_lost

    summary = (
        f"{player1.name} {validated.player1_score}-{validated.player2_score} {player2.name} "
        f"(elo {delta:+d}/{-delta:+d})"
    )
    await session.flush()
    await session.commit()
    await session.refresh(new_match)

    logger.info(f"Recorded match {new_match.id}: {summary}")
    return await get_match(session, new_match.id)


#
# Monthly awards
#

async def list_awards(session: AsyncSession, player_id: Optional[int] = None) -> List[Dict]:
    """Awards, most recent month first."""
    query = select(MonthlyAward).order_by(
        MonthlyAward.year.desc(),
        MonthlyAward.month.desc(),
        MonthlyAward.category.asc(),
        MonthlyAward.player_id.asc(),
    ).execution_options(populate_existing=True)
    if player_id is not None:
        query = query.where(MonthlyAward.player_id == player_id)
    result = await session.execute(query)
    return [award_to_dict(a) for a in result.scalars().all()]


def validate_award_row(row: AwardRow) -> None:
    if row.category not in AWARD_CATEGORIES:
        raise AwardValidationError(f"Unknown award category '{row.category}'")
    if not 1 <= row.month <= 12:
        raise AwardValidationError(f"Month must be between 1 and 12, got {row.month}")
    if not row.month_name:
        raise AwardValidationError("month_name is required")


async def upsert_awards(session: AsyncSession, rows: List[AwardRow], commit: bool = True) -> List[Dict]:
    """
    Insert award rows, replacing any existing row for the same
    (player, category, month, year).

    Args:
        session: Database session
        rows: Award rows to save
        commit: Commit when done; pass False to join a larger transaction

    Returns:
        The stored rows
    """
    if not rows:
        return []
    for row in rows:
        validate_award_row(row)

    player_ids = {row.player_id for row in rows}
    result = await session.execute(select(Player.id).where(Player.id.in_(player_ids)))
    missing = player_ids - set(result.scalars().all())
    if missing:
        raise PlayerNotFoundError(f"Player(s) not found: {', '.join(str(m) for m in sorted(missing))}")

    for row in rows:
        stmt = _dialect_insert(session, MonthlyAward).values(**row.to_dict())
        stmt = stmt.on_conflict_do_update(
            index_elements=["player_id", "category", "month", "year"],
            set_=dict(month_name=stmt.excluded.month_name, updated_at=func.now()),
        )
        await session.execute(stmt)

    if commit:
        await session.commit()

    keys = [and_(
        MonthlyAward.player_id == row.player_id,
        MonthlyAward.category == row.category,
        MonthlyAward.month == row.month,
        MonthlyAward.year == row.year,
    ) for row in rows]
    result = await session.execute(
        select(MonthlyAward).where(or_(*keys)).order_by(MonthlyAward.id.asc()).execution_options(populate_existing=True)
    )
    return [award_to_dict(a) for a in result.scalars().all()]


def group_awards_by_month(awards: List[Dict]) -> Dict[str, List[Dict]]:
    """Group award dicts under "<month_name> <year>" keys, keeping order."""
    grouped = defaultdict(list)
    for award in awards:
        grouped[f"{award['month_name']} {award['year']}"].append(award)
    return dict(grouped)


async def get_player_detail(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """Player profile with match history and awards."""
    player = await get_player(session, player_id)
    if player is None:
        return None
    awards = await list_awards(session, player_id=player_id)
    return {
        "player": player,
        "matches": await list_matches(session, player_id=player_id),
        "awards": awards,
        "awards_by_month": group_awards_by_month(awards),
    }


#
# Settings
#

async def get_setting(session: AsyncSession, key: str) -> Optional[str]:
    """
    Get a setting value.

    Args:
        session: Database session
        key: Setting key

    Returns:
        Setting value or None if not found
    """
    result = await session.execute(
        select(Setting).where(Setting.key == key).execution_options(populate_existing=True)
    )
    setting = result.scalar_one_or_none()
    return setting.value if setting else None


async def set_setting(session: AsyncSession, key: str, value: str, commit: bool = True) -> None:
    """
    Set a setting value (upsert).

    Args:
        session: Database session
        key: Setting key
        value: Setting value
        commit: Commit when done; pass False to join a larger transaction
    """
    stmt = _dialect_insert(session, Setting).values(key=key, value=value)
    stmt = stmt.on_conflict_do_update(
        index_elements=['key'],
        set_=dict(value=stmt.excluded.value, updated_at=func.now())
    )
    await session.execute(stmt)
    if commit:
        await session.commit()
