"""
Monthly award calculation service.
Folds a period's matches into per-player statistics and ranks every award category.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ladder.models.records import AwardRow, MatchRecord, PlayerRecord
from ladder.utils import constants
from ladder.utils.datetime_utils import as_utc, local_year_month, month_bounds, month_name


# ============================================================================
# PlayerPeriodStats Class
# ============================================================================

class PlayerPeriodStats:
    """Encapsulates one player's statistics within a period."""

    def __init__(self, player: PlayerRecord):
        self.player = player
        self.total_points = 0
        self.points_against: List[int] = []
        self.max_points_in_match = 0
        self.biggest_elo_swing = 0
        self.wins = 0
        self.losses = 0
        self.current_streak = 0
        self.longest_streak = 0
        self.giant_killer_wins = 0
        self.unique_opponents: Set[int] = set()

    @property
    def player_id(self) -> int:
        return self.player.id

    @property
    def matches_count(self) -> int:
        return len(self.points_against)

    @property
    def avg_points_against(self) -> float:
        """Average points conceded per match."""
        if not self.points_against:
            return 0.0
        return sum(self.points_against) / len(self.points_against)

    @property
    def unique_opponents_count(self) -> int:
        return len(self.unique_opponents)

    def record_match(self, scored: int, conceded: int, elo_change: int, opponent_id: int) -> None:
        """Record the per-match numbers shared by winner and loser."""
        self.total_points += scored
        self.points_against.append(conceded)
        self.max_points_in_match = max(self.max_points_in_match, scored)
        self.biggest_elo_swing = max(self.biggest_elo_swing, abs(elo_change))
        self.unique_opponents.add(opponent_id)

    def record_win(self) -> None:
        self.wins += 1
        self.current_streak += 1
        self.longest_streak = max(self.longest_streak, self.current_streak)

    def record_loss(self) -> None:
        self.losses += 1
        self.current_streak = 0

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player.id,
            "player_name": self.player.name,
            "rating": self.player.rating,
            "matches": self.matches_count,
            "total_points": self.total_points,
            "avg_points_against": round(self.avg_points_against, 1),
            "max_points_in_match": self.max_points_in_match,
            "biggest_elo_swing": self.biggest_elo_swing,
            "wins": self.wins,
            "losses": self.losses,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "giant_killer_wins": self.giant_killer_wins,
            "unique_opponents_count": self.unique_opponents_count,
        }


@dataclass
class RivalryPair:
    """How often an unordered pair of players met in a period."""

    player1_id: int  # always the lower id
    player2_id: int
    match_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "match_count": self.match_count,
        }


# Category -> (metric, highest first?)
CATEGORY_METRICS = {
    constants.MOST_POINTS: (lambda s: s.total_points, True),
    constants.HIGHEST_ELO: (lambda s: s.player.rating, True),
    constants.WINNING_STREAK: (lambda s: s.longest_streak, True),
    constants.GIANT_KILLER: (lambda s: s.giant_killer_wins, True),
    constants.SOCIAL_BUTTERFLY: (lambda s: s.unique_opponents_count, True),
    constants.BEST_DEFENSE: (lambda s: s.avg_points_against, False),
    constants.HIGHEST_MATCH: (lambda s: s.max_points_in_match, True),
    constants.ELO_SWING: (lambda s: s.biggest_elo_swing, True),
    constants.BIGGEST_LOSER: (lambda s: s.losses, True),
}


def rank_players(stats: Iterable[PlayerPeriodStats], category: str) -> List[PlayerPeriodStats]:
    """Order players by a category's metric; equal metrics fall back to player id."""
    metric, descending = CATEGORY_METRICS[category]
    if descending:
        return sorted(stats, key=lambda s: (-metric(s), s.player_id))
    return sorted(stats, key=lambda s: (metric(s), s.player_id))


@dataclass
class CategoryResults:
    """Rankings for every award category within one period."""

    period_start: datetime
    period_end: datetime
    match_count: int
    rankings: Dict[str, List[PlayerPeriodStats]] = field(default_factory=dict)
    rivalries: List[RivalryPair] = field(default_factory=list)

    @property
    def top_rivalry(self) -> Optional[RivalryPair]:
        return self.rivalries[0] if self.rivalries else None

    def winners(self) -> Dict[str, PlayerPeriodStats]:
        """Top player of each category that has anyone ranked."""
        return {
            category: ranked[0]
            for category, ranked in self.rankings.items()
            if ranked
        }

    def to_dict(self, limit: Optional[int] = None) -> Dict:
        return {
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "match_count": self.match_count,
            "categories": {
                category: [s.to_dict() for s in ranked[:limit]]
                for category, ranked in self.rankings.items()
            },
            "rivalries": [r.to_dict() for r in self.rivalries[:limit]],
        }


# ============================================================================
# PeriodTracker Class
# ============================================================================

class PeriodTracker:
    """Tracks period statistics for every known player."""

    def __init__(self, players: Iterable[PlayerRecord]):
        self.players: Dict[int, PlayerPeriodStats] = {
            player.id: PlayerPeriodStats(player) for player in players
        }
        self.rivalries: Dict[Tuple[int, int], RivalryPair] = {}

    def process_match(self, match: MatchRecord) -> bool:
        """
        Fold one match into the running statistics.

        Returns:
            False when the match references a player that is not known
        """
        p1_stats = self.players.get(match.player1_id)
        p2_stats = self.players.get(match.player2_id)
        if p1_stats is None or p2_stats is None:
            return False

        p1_stats.record_match(match.player1_score, match.player2_score,
                              match.player1_elo_change, match.player2_id)
        p2_stats.record_match(match.player2_score, match.player1_score,
                              match.player2_elo_change, match.player1_id)

        if match.winner_id == match.player1_id:
            winner, loser = p1_stats, p2_stats
        else:
            winner, loser = p2_stats, p1_stats
        winner.record_win()
        loser.record_loss()

        # Uses current ratings, not ratings at the time of the match
        if winner.player.rating < loser.player.rating:
            winner.giant_killer_wins += 1

        self._record_rivalry(match.player1_id, match.player2_id)
        return True

    def _record_rivalry(self, player_a: int, player_b: int) -> None:
        pair = (min(player_a, player_b), max(player_a, player_b))
        if pair not in self.rivalries:
            self.rivalries[pair] = RivalryPair(player1_id=pair[0], player2_id=pair[1])
        self.rivalries[pair].match_count += 1

    def active_players(self) -> List[PlayerPeriodStats]:
        """Players with at least one match in the period."""
        return [s for s in self.players.values() if s.matches_count > 0]


# ============================================================================
# Main Processing Functions
# ============================================================================

def filter_matches(matches: Iterable[MatchRecord], period_start: datetime,
                   period_end: datetime) -> List[MatchRecord]:
    """Matches played in [period_start, period_end), oldest first."""
    start, end = as_utc(period_start), as_utc(period_end)
    in_period = [
        m for m in matches
        if m.timestamp is not None and start <= as_utc(m.timestamp) < end
    ]
    return sorted(in_period, key=lambda m: (as_utc(m.timestamp), m.id))


def compute_category_winners(
    players: List[PlayerRecord],
    matches: List[MatchRecord],
    period_start: datetime,
    period_end: datetime,
) -> Optional[CategoryResults]:
    """
    Rank every award category for the matches played in a period.

    Args:
        players: All known players (current ratings)
        matches: Match history; anything outside the period is ignored
        period_start: Inclusive start of the period
        period_end: Exclusive end of the period

    Returns:
        CategoryResults, or None when no match falls inside the period
    """
    period_matches = filter_matches(matches, period_start, period_end)
    if not period_matches:
        return None

    tracker = PeriodTracker(players)
    processed = sum(1 for match in period_matches if tracker.process_match(match))

    active = tracker.active_players()
    rankings = {}
    for category in constants.PLAYER_CATEGORIES:
        if category == constants.HIGHEST_ELO:
            # Open to everyone, active this period or not
            rankings[category] = rank_players(tracker.players.values(), category)
        else:
            rankings[category] = rank_players(active, category)

    rivalries = sorted(
        tracker.rivalries.values(),
        key=lambda r: (-r.match_count, r.player1_id, r.player2_id),
    )

    return CategoryResults(
        period_start=period_start,
        period_end=period_end,
        match_count=processed,
        rankings=rankings,
        rivalries=rivalries,
    )


def compute_monthly_winners(players: List[PlayerRecord], matches: List[MatchRecord],
                            year: int, month: int, tz=None) -> Optional[CategoryResults]:
    """compute_category_winners over one calendar month."""
    start, end = month_bounds(year, month, tz)
    return compute_category_winners(players, matches, start, end)


def build_award_rows(results: Optional[CategoryResults], year: int, month: int) -> List[AwardRow]:
    """
    Turn category winners into award rows.

    One row per category winner, plus a rivalryAward row for each player of
    the top rivalry pair.
    """
    if results is None:
        return []

    name = month_name(month)
    rows = [
        AwardRow(player_id=winner.player_id, category=category, month=month, year=year, month_name=name)
        for category, winner in results.winners().items()
    ]

    rivalry = results.top_rivalry
    if rivalry is not None:
        for player_id in (rivalry.player1_id, rivalry.player2_id):
            rows.append(AwardRow(player_id=player_id, category=constants.RIVALRY_AWARD,
                                 month=month, year=year, month_name=name))
    return rows


def available_months(matches: Iterable[MatchRecord], tz=None) -> List[Tuple[int, int]]:
    """(year, month) pairs that have at least one match, newest first."""
    months = {
        local_year_month(m.timestamp, tz)
        for m in matches
        if m.timestamp is not None
    }
    return sorted(months, reverse=True)
