"""
Dashboard summary statistics over the full match history.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ladder.models.records import MatchRecord, PlayerRecord
from ladder.utils.datetime_utils import as_utc


def _newest_first(matches: List[MatchRecord]) -> List[MatchRecord]:
    return sorted(
        (m for m in matches if m.timestamp is not None),
        key=lambda m: (as_utc(m.timestamp), m.id),
        reverse=True,
    )


def match_volume(matches: List[MatchRecord], now: datetime) -> Dict:
    """
    Total matches plus the week-over-week trend.

    The trend compares the last 7 days with the 7 days before that, as a
    rounded percentage. With nothing the week before, any activity this
    week counts as +100%.
    """
    now = as_utc(now)
    one_week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)

    last_week = 0
    previous_week = 0
    for match in matches:
        if match.timestamp is None:
            continue
        played = as_utc(match.timestamp)
        if played >= one_week_ago:
            last_week += 1
        elif played >= two_weeks_ago:
            previous_week += 1

    if previous_week > 0:
        trend = round((last_week - previous_week) / previous_week * 100)
    elif last_week > 0:
        trend = 100
    else:
        trend = 0

    return {
        "total": len(matches),
        "last_week": last_week,
        "previous_week": previous_week,
        "trend_percentage": trend,
    }


def win_rate_leader(players: List[PlayerRecord]) -> Optional[Dict]:
    """Best win rate among players who have played; earlier players win ties."""
    leader = None
    for player in players:
        if player.matches_played == 0:
            continue
        if leader is None or player.win_rate > leader.win_rate:
            leader = player
    if leader is None:
        return None
    return {
        "player_id": leader.id,
        "player_name": leader.name,
        "win_rate": round(leader.win_rate * 100),
    }


def current_streaks(players: List[PlayerRecord], matches: List[MatchRecord]) -> Dict[int, int]:
    """Unbroken run of most recent wins for each player that has one."""
    ordered = _newest_first(matches)
    streaks = {}
    for player in players:
        streak = 0
        for match in ordered:
            if not match.involves(player.id):
                continue
            if match.winner_id != player.id:
                break
            streak += 1
        if streak > 0:
            streaks[player.id] = streak
    return streaks


def streak_leader(players: List[PlayerRecord], matches: List[MatchRecord]) -> Optional[Dict]:
    streaks = current_streaks(players, matches)
    if not streaks:
        return None
    names = {p.id: p.name for p in players}
    player_id = max(streaks, key=lambda pid: (streaks[pid], -pid))
    return {"player_id": player_id, "player_name": names[player_id], "streak": streaks[player_id]}


def biggest_elo_change(matches: List[MatchRecord]) -> Optional[Dict]:
    """The match that moved ratings the most."""
    if not matches:
        return None
    match = max(
        matches,
        key=lambda m: (abs(m.player1_elo_change) + abs(m.player2_elo_change), -m.id),
    )
    return {
        "match_id": match.id,
        "player1_id": match.player1_id,
        "player2_id": match.player2_id,
        "player1_change": match.player1_elo_change,
        "player2_change": match.player2_elo_change,
        "total_elo_change": abs(match.player1_elo_change) + abs(match.player2_elo_change),
    }


def compute_summary(players: List[PlayerRecord], matches: List[MatchRecord], now: datetime) -> Dict:
    """Everything the dashboard cards show, in one dict."""
    return {
        "matches": match_volume(matches, now),
        "win_rate_leader": win_rate_leader(players),
        "winning_streak": streak_leader(players, matches),
        "biggest_elo_change": biggest_elo_change(matches),
    }
