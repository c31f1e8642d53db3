"""
Tests for the award service - period statistics and category rankings.
"""
from datetime import datetime

import pytest
import pytz
from ladder.models.records import MatchRecord, PlayerRecord
from ladder.services import award_service
from ladder.utils import constants


def at(year, month, day, hour=12):
    return pytz.UTC.localize(datetime(year, month, day, hour))


def make_match(match_id, p1, p2, s1, s2, change1, played_at):
    return MatchRecord(
        id=match_id,
        player1_id=p1,
        player2_id=p2,
        player1_score=s1,
        player2_score=s2,
        winner_id=p1 if s1 > s2 else p2,
        player1_elo_change=change1,
        player2_elo_change=-change1,
        played_at=played_at,
    )


@pytest.fixture
def players():
    return [
        PlayerRecord(id=1, name="Alice", rating=1040, matches_played=3, matches_won=2, matches_lost=1),
        PlayerRecord(id=2, name="Bob", rating=990, matches_played=3, matches_won=1, matches_lost=2),
        PlayerRecord(id=3, name="Cara", rating=970, matches_played=2, matches_won=1, matches_lost=1),
        PlayerRecord(id=4, name="Dan"),
    ]


@pytest.fixture
def matches():
    return [
        make_match(1, 1, 2, 11, 5, 16, at(2025, 8, 3)),
        make_match(2, 1, 3, 11, 9, 15, at(2025, 8, 5)),
        make_match(3, 2, 3, 7, 11, -14, at(2025, 8, 10)),
        make_match(4, 1, 2, 8, 11, -18, at(2025, 8, 20)),
        # Outside August
        make_match(5, 3, 4, 11, 2, 16, at(2025, 7, 31, 23)),
        make_match(6, 2, 4, 11, 1, 16, pytz.UTC.localize(datetime(2025, 9, 1))),
    ]


@pytest.fixture
def august(players, matches):
    return award_service.compute_monthly_winners(players, matches, 2025, 8, tz=pytz.UTC)


def stats_for(results, category, player_id):
    return next(s for s in results.rankings[category] if s.player_id == player_id)


# ============================================================================
# PlayerPeriodStats
# ============================================================================

def test_streak_win_win_loss_win():
    """W, W, L, W leaves a longest streak of 2 and a current streak of 1."""
    stats = award_service.PlayerPeriodStats(PlayerRecord(id=1, name="Alice"))
    for won in (True, True, False, True):
        if won:
            stats.record_win()
        else:
            stats.record_loss()
    assert stats.longest_streak == 2
    assert stats.current_streak == 1
    assert stats.wins == 3
    assert stats.losses == 1


def test_record_match_tracks_points_and_opponents():
    stats = award_service.PlayerPeriodStats(PlayerRecord(id=1, name="Alice"))
    stats.record_match(11, 4, 16, opponent_id=2)
    stats.record_match(9, 11, -20, opponent_id=2)
    stats.record_match(11, 7, 12, opponent_id=3)

    assert stats.total_points == 31
    assert stats.avg_points_against == pytest.approx(22 / 3)
    assert stats.max_points_in_match == 11
    assert stats.biggest_elo_swing == 20
    assert stats.unique_opponents_count == 2
    assert stats.matches_count == 3


def test_avg_points_against_without_matches():
    stats = award_service.PlayerPeriodStats(PlayerRecord(id=1, name="Alice"))
    assert stats.avg_points_against == 0.0


# ============================================================================
# PeriodTracker
# ============================================================================

def test_giant_killer_counts_only_lower_rated_winner():
    """A(900) beating B(1100) is a giant kill for A and nothing for B."""
    tracker = award_service.PeriodTracker([
        PlayerRecord(id=1, name="A", rating=900),
        PlayerRecord(id=2, name="B", rating=1100),
    ])
    tracker.process_match(make_match(1, 1, 2, 11, 6, 24, at(2025, 8, 1)))

    assert tracker.players[1].giant_killer_wins == 1
    assert tracker.players[2].giant_killer_wins == 0


def test_favourite_win_is_not_a_giant_kill():
    tracker = award_service.PeriodTracker([
        PlayerRecord(id=1, name="A", rating=1100),
        PlayerRecord(id=2, name="B", rating=900),
    ])
    tracker.process_match(make_match(1, 1, 2, 11, 6, 8, at(2025, 8, 1)))
    assert tracker.players[1].giant_killer_wins == 0


def test_unknown_player_is_skipped():
    tracker = award_service.PeriodTracker([PlayerRecord(id=1, name="A")])
    assert tracker.process_match(make_match(1, 1, 99, 11, 6, 16, at(2025, 8, 1))) is False
    assert tracker.active_players() == []
    assert tracker.rivalries == {}


def test_rivalry_pairs_are_unordered():
    tracker = award_service.PeriodTracker([
        PlayerRecord(id=1, name="A"),
        PlayerRecord(id=2, name="B"),
    ])
    tracker.process_match(make_match(1, 1, 2, 11, 6, 16, at(2025, 8, 1)))
    tracker.process_match(make_match(2, 2, 1, 11, 6, 16, at(2025, 8, 2)))

    assert list(tracker.rivalries) == [(1, 2)]
    assert tracker.rivalries[(1, 2)].match_count == 2


# ============================================================================
# Category rankings
# ============================================================================

def test_filter_matches_is_half_open_and_sorted(matches):
    start, end = at(2025, 8, 1, 0), pytz.UTC.localize(datetime(2025, 9, 1))
    in_period = award_service.filter_matches(reversed(matches), start, end)
    assert [m.id for m in in_period] == [1, 2, 3, 4]


def test_monthly_winners(august):
    winners = {category: s.player_id for category, s in august.winners().items()}

    assert august.match_count == 4
    assert winners == {
        constants.MOST_POINTS: 1,        # 30 points
        constants.HIGHEST_ELO: 1,        # 1040
        constants.WINNING_STREAK: 1,     # W, W, L
        constants.GIANT_KILLER: 2,       # Bob and Cara tie on 1, lower id wins
        constants.SOCIAL_BUTTERFLY: 1,   # everyone met 2 opponents
        constants.BEST_DEFENSE: 1,       # 25 conceded over 3 matches
        constants.HIGHEST_MATCH: 1,      # everyone scored 11 once
        constants.ELO_SWING: 1,          # Alice and Bob both 18
        constants.BIGGEST_LOSER: 2,      # 2 losses
    }


def test_period_stats_values(august):
    bob = stats_for(august, constants.MOST_POINTS, 2)
    assert bob.total_points == 23
    assert bob.avg_points_against == pytest.approx(10.0)
    assert bob.longest_streak == 1
    assert bob.giant_killer_wins == 1
    assert bob.biggest_elo_swing == 18

    cara = stats_for(august, constants.MOST_POINTS, 3)
    assert cara.total_points == 20
    assert cara.giant_killer_wins == 1


def test_inactive_players_only_rank_for_highest_elo(august):
    assert 4 in [s.player_id for s in august.rankings[constants.HIGHEST_ELO]]
    for category in constants.PLAYER_CATEGORIES:
        if category != constants.HIGHEST_ELO:
            assert 4 not in [s.player_id for s in august.rankings[category]]


def test_highest_elo_can_go_to_inactive_player(players, matches):
    players = players[:3] + [PlayerRecord(id=4, name="Dan", rating=1200)]
    results = award_service.compute_monthly_winners(players, matches, 2025, 8, tz=pytz.UTC)
    assert results.winners()[constants.HIGHEST_ELO].player_id == 4


def test_best_defense_ranks_lowest_first(august):
    ranked = [s.player_id for s in august.rankings[constants.BEST_DEFENSE]]
    assert ranked == [1, 3, 2]


def test_rivalries_sorted_by_count_then_ids(august):
    assert [(r.player1_id, r.player2_id, r.match_count) for r in august.rivalries] == [
        (1, 2, 2), (1, 3, 1), (2, 3, 1),
    ]
    assert august.top_rivalry.player1_id == 1


def test_aggregation_is_idempotent(players, matches):
    first = award_service.compute_monthly_winners(players, matches, 2025, 8, tz=pytz.UTC)
    second = award_service.compute_monthly_winners(players, matches, 2025, 8, tz=pytz.UTC)
    assert first.to_dict() == second.to_dict()


def test_empty_period_returns_none(players, matches):
    assert award_service.compute_monthly_winners(players, matches, 2024, 2, tz=pytz.UTC) is None
    assert award_service.compute_category_winners(players, [], at(2025, 8, 1), at(2025, 9, 1)) is None


def test_month_follows_timezone(players):
    """03:00 UTC on Sep 1 is still August 31 in Los Angeles."""
    late = [make_match(1, 1, 2, 11, 4, 16, pytz.UTC.localize(datetime(2025, 9, 1, 3)))]
    la = pytz.timezone("America/Los_Angeles")

    assert award_service.compute_monthly_winners(players, late, 2025, 8, tz=la) is not None
    assert award_service.compute_monthly_winners(players, late, 2025, 8, tz=pytz.UTC) is None


def test_to_dict_limit(august):
    data = august.to_dict(limit=1)
    assert data["match_count"] == 4
    assert all(len(ranked) <= 1 for ranked in data["categories"].values())
    assert data["categories"][constants.MOST_POINTS][0]["player_name"] == "Alice"
    assert len(data["rivalries"]) == 1


# ============================================================================
# Award rows and months
# ============================================================================

def test_build_award_rows(august):
    rows = award_service.build_award_rows(august, 2025, 8)

    assert len(rows) == len(constants.PLAYER_CATEGORIES) + 2
    assert all(r.month == 8 and r.year == 2025 and r.month_name == "August" for r in rows)
    rivalry_players = sorted(r.player_id for r in rows if r.category == constants.RIVALRY_AWARD)
    assert rivalry_players == [1, 2]


def test_build_award_rows_without_results():
    assert award_service.build_award_rows(None, 2025, 8) == []


def test_available_months(matches):
    assert award_service.available_months(matches, tz=pytz.UTC) == [(2025, 9), (2025, 8), (2025, 7)]
    assert award_service.available_months([], tz=pytz.UTC) == []
