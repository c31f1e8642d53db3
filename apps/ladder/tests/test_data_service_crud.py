"""
Tests for data_service CRUD operations against the test database.
"""
from datetime import datetime

import pytest
import pytest_asyncio
import pytz
from sqlalchemy import func, select

from ladder.database.models import Match, MonthlyAward
from ladder.models.records import AwardRow
from ladder.services import data_service
from ladder.services.rating_service import MatchValidationError
from ladder.utils import constants

# db_session fixture is provided by conftest.py


@pytest_asyncio.fixture
async def alice(db_session):
    return await data_service.create_player(db_session, "Alice")


@pytest_asyncio.fixture
async def bob(db_session):
    return await data_service.create_player(db_session, "Bob")


# ============================================================================
# Player CRUD Tests
# ============================================================================

@pytest.mark.asyncio
async def test_create_player(db_session):
    player = await data_service.create_player(db_session, "  Alice  ")

    assert player["id"] is not None
    assert player["name"] == "Alice"
    assert player["rating"] == constants.INITIAL_RATING
    assert (player["matches_played"], player["matches_won"], player["matches_lost"]) == (0, 0, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [None, "", "   "])
async def test_create_player_requires_name(db_session, name):
    with pytest.raises(data_service.PlayerValidationError):
        await data_service.create_player(db_session, name)


@pytest.mark.asyncio
async def test_duplicate_player_name_is_case_insensitive(db_session, alice):
    with pytest.raises(data_service.DuplicatePlayerError):
        await data_service.create_player(db_session, "ALICE")


@pytest.mark.asyncio
async def test_concurrent_duplicate_name_hits_unique_index(db_session, alice, monkeypatch):
    """The unique index catches a name registered after the lookup ran."""
    async def stale_lookup(session, name):
        return None

    monkeypatch.setattr(data_service, "get_player_by_name", stale_lookup)
    with pytest.raises(data_service.DuplicatePlayerError):
        await data_service.create_player(db_session, "ALICE")

    # Session is rolled back and usable again
    bob = await data_service.create_player(db_session, "Bob")
    names = [p["name"] for p in await data_service.list_players(db_session)]
    assert sorted(names) == ["Alice", "Bob"]
    assert bob["id"] != alice["id"]


@pytest.mark.asyncio
async def test_list_players_ordered_by_rating(db_session, alice, bob):
    cara = await data_service.create_player(db_session, "Cara")
    await data_service.create_match(db_session, cara["id"], alice["id"], 11, 3)

    players = await data_service.list_players(db_session)
    assert [p["name"] for p in players] == ["Cara", "Bob", "Alice"]


@pytest.mark.asyncio
async def test_get_missing_player(db_session):
    assert await data_service.get_player(db_session, 999) is None
    assert await data_service.get_player_detail(db_session, 999) is None


# ============================================================================
# Match CRUD Tests
# ============================================================================

@pytest.mark.asyncio
async def test_create_match_updates_both_players(db_session, alice, bob):
    """A(1000) beats B(1000) 11-5: +16/-16 stored on the match and applied to both players."""
    match = await data_service.create_match(db_session, alice["id"], bob["id"], 11, 5)

    assert match["winner_id"] == alice["id"]
    assert match["winner_name"] == "Alice"
    assert match["player1_name"] == "Alice"
    assert match["player2_name"] == "Bob"
    assert match["player1_elo_change"] == 16
    assert match["player2_elo_change"] == -16
    assert match["played_at"] is not None

    alice_after = await data_service.get_player(db_session, alice["id"])
    bob_after = await data_service.get_player(db_session, bob["id"])
    assert alice_after["rating"] == 1016
    assert bob_after["rating"] == 984
    assert (alice_after["matches_played"], alice_after["matches_won"], alice_after["matches_lost"]) == (1, 1, 0)
    assert (bob_after["matches_played"], bob_after["matches_won"], bob_after["matches_lost"]) == (1, 0, 1)


@pytest.mark.asyncio
async def test_second_match_uses_updated_ratings(db_session, alice, bob):
    await data_service.create_match(db_session, alice["id"], bob["id"], 11, 5)
    rematch = await data_service.create_match(db_session, bob["id"], alice["id"], 11, 8)

    # Bob (984) beating Alice (1016) is worth more than 16
    assert rematch["player1_elo_change"] == 17
    assert rematch["player2_elo_change"] == -17
    ratings = {p["name"]: p["rating"] for p in await data_service.list_players(db_session)}
    assert ratings == {"Alice": 999, "Bob": 1001}


@pytest.mark.asyncio
async def test_invalid_match_writes_nothing(db_session, alice, bob):
    with pytest.raises(MatchValidationError):
        await data_service.create_match(db_session, alice["id"], bob["id"], 10, 10)
    with pytest.raises(MatchValidationError):
        await data_service.create_match(db_session, alice["id"], alice["id"], 11, 5)

    count = await db_session.execute(select(func.count()).select_from(Match))
    assert count.scalar() == 0
    assert (await data_service.get_player(db_session, alice["id"]))["rating"] == constants.INITIAL_RATING


@pytest.mark.asyncio
async def test_match_with_unknown_player(db_session, alice):
    with pytest.raises(data_service.PlayerNotFoundError):
        await data_service.create_match(db_session, alice["id"], 999, 11, 5)


@pytest.mark.asyncio
async def test_list_matches_newest_first(db_session, alice, bob):
    older = await data_service.create_match(
        db_session, alice["id"], bob["id"], 11, 5, played_at=pytz.UTC.localize(datetime(2025, 8, 1, 12))
    )
    newer = await data_service.create_match(
        db_session, bob["id"], alice["id"], 11, 7, played_at=pytz.UTC.localize(datetime(2025, 8, 2, 12))
    )
    cara = await data_service.create_player(db_session, "Cara")
    await data_service.create_match(
        db_session, cara["id"], bob["id"], 11, 2, played_at=pytz.UTC.localize(datetime(2025, 7, 1, 12))
    )

    matches = await data_service.list_matches(db_session, player_id=alice["id"])
    assert [m["id"] for m in matches] == [newer["id"], older["id"]]
    assert len(await data_service.list_matches(db_session)) == 3


@pytest.mark.asyncio
async def test_load_match_records_keeps_utc(db_session, alice, bob):
    played = pytz.timezone("America/New_York").localize(datetime(2025, 8, 31, 22))
    await data_service.create_match(db_session, alice["id"], bob["id"], 11, 5, played_at=played)

    [record] = await data_service.load_match_records(db_session)
    assert record.played_at == played
    assert record.played_at.tzinfo is not None


# ============================================================================
# Monthly Award Tests
# ============================================================================

def award(player_id, category=constants.MOST_POINTS, month=8, year=2025, month_name="August"):
    return AwardRow(player_id=player_id, category=category, month=month, year=year, month_name=month_name)


@pytest.mark.asyncio
async def test_upsert_awards_twice_keeps_one_row(db_session, alice):
    await data_service.upsert_awards(db_session, [award(alice["id"], month_name="Aug")])
    saved = await data_service.upsert_awards(db_session, [award(alice["id"])])

    assert len(saved) == 1
    assert saved[0]["month_name"] == "August"
    count = await db_session.execute(select(func.count()).select_from(MonthlyAward))
    assert count.scalar() == 1


@pytest.mark.asyncio
async def test_upsert_awards_validation(db_session, alice):
    with pytest.raises(data_service.AwardValidationError):
        await data_service.upsert_awards(db_session, [award(alice["id"], category="bestServe")])
    with pytest.raises(data_service.AwardValidationError):
        await data_service.upsert_awards(db_session, [award(alice["id"], month=13)])
    with pytest.raises(data_service.PlayerNotFoundError):
        await data_service.upsert_awards(db_session, [award(999)])
    assert await data_service.upsert_awards(db_session, []) == []


@pytest.mark.asyncio
async def test_list_awards_most_recent_month_first(db_session, alice, bob):
    await data_service.upsert_awards(db_session, [
        award(alice["id"], month=7, month_name="July"),
        award(bob["id"], category=constants.BIGGEST_LOSER),
        award(alice["id"], month=12, year=2024, month_name="December"),
    ])

    awards = await data_service.list_awards(db_session)
    assert [(a["year"], a["month"]) for a in awards] == [(2025, 8), (2025, 7), (2024, 12)]
    assert len(await data_service.list_awards(db_session, player_id=alice["id"])) == 2


@pytest.mark.asyncio
async def test_player_detail_groups_awards(db_session, alice, bob):
    await data_service.create_match(db_session, alice["id"], bob["id"], 11, 5)
    await data_service.upsert_awards(db_session, [
        award(alice["id"]),
        award(alice["id"], category=constants.WINNING_STREAK),
        award(alice["id"], month=7, month_name="July"),
    ])

    detail = await data_service.get_player_detail(db_session, alice["id"])
    assert detail["player"]["name"] == "Alice"
    assert len(detail["matches"]) == 1
    assert list(detail["awards_by_month"]) == ["August 2025", "July 2025"]
    assert len(detail["awards_by_month"]["August 2025"]) == 2


# ============================================================================
# Settings Tests
# ============================================================================

@pytest.mark.asyncio
async def test_settings_upsert(db_session):
    assert await data_service.get_setting(db_session, "awards_last_saved_month") is None

    await data_service.set_setting(db_session, "awards_last_saved_month", "2025-08")
    await data_service.set_setting(db_session, "awards_last_saved_month", "2025-09")

    assert await data_service.get_setting(db_session, "awards_last_saved_month") == "2025-09"
