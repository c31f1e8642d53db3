"""
ELO rating service.
Validates match results and computes the rating change for both players.
"""

import math
from dataclasses import replace
from typing import Optional

from ladder.models.records import PlayerRecord, ValidatedMatch
from ladder.utils.constants import K, WINNING_SCORE


# Larger rating gaps no longer change a rounded delta
MAX_RATING_GAP = 4000.0


class MatchValidationError(ValueError):
    """Raised when a submitted match result breaks the scoring rules."""


# ============================================================================
# Helper Functions (ELO Calculations)
# ============================================================================

def expected_score(elo_a: float, elo_b: float) -> float:
    """
    Calculate expected score for player A against player B using ELO formula.

    Formula: P(A beats B) = 1 / (1 + 10^((elo_B - elo_A) / 400))
    If elo_A > elo_B, result > 0.5 (A is favored)

    Gaps beyond MAX_RATING_GAP saturate; the power would overflow otherwise.
    """
    diff = max(-MAX_RATING_GAP, min(MAX_RATING_GAP, elo_b - elo_a))
    return 1 / (1 + 10 ** (diff / 400))


def elo_change(k: float, expected_score: float, actual_score: float) -> float:
    """Calculate the unrounded ELO rating change."""
    return k * (actual_score - expected_score)


def actual_score(score_a: int, score_b: int) -> float:
    """Result for side A: 1 for a win, 0 for a loss, 0.5 for a tie."""
    if score_a > score_b:
        return 1.0
    if score_a < score_b:
        return 0.0
    return 0.5


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, .5 going away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def compute_rating_delta(rating_a: int, rating_b: int, score_a: int, score_b: int) -> int:
    """
    Rating change for side A after a match against side B.

    Side B's change is always the negation of the returned value.

    Args:
        rating_a: Current rating of side A
        rating_b: Current rating of side B
        score_a: Points scored by side A
        score_b: Points scored by side B

    Returns:
        Signed integer delta for side A, bounded by K in magnitude
    """
    expected_a = expected_score(rating_a, rating_b)
    return round_half_away_from_zero(elo_change(K, expected_a, actual_score(score_a, score_b)))


# ============================================================================
# Match Processing Helpers
# ============================================================================

def calculate_winner(player1_id, player2_id, player1_score: int, player2_score: int):
    """Id of the side with the strictly higher score, or None on a tie."""
    if player1_score > player2_score:
        return player1_id
    if player2_score > player1_score:
        return player2_id
    return None


def validate_match(player1_id, player2_id, player1_score: int, player2_score: int,
                   winner_id: Optional[int] = None) -> ValidatedMatch:
    """
    Check a submitted match result and derive its winner.

    Rules: both players given, no self-play, no negative scores, at least
    one side reaches WINNING_SCORE, no draws. If the caller supplied a
    winner it has to agree with the scores.

    Raises:
        MatchValidationError: describing the first rule that was broken
    """
    if player1_id in (None, "") or player2_id in (None, ""):
        raise MatchValidationError("Both player IDs are required")
    if player1_id == player2_id:
        raise MatchValidationError("Cannot play against yourself")
    if player1_score < 0 or player2_score < 0:
        raise MatchValidationError("Scores cannot be negative")
    if player1_score == player2_score:
        raise MatchValidationError("Scores cannot be tied - someone must win!")
    if player1_score < WINNING_SCORE and player2_score < WINNING_SCORE:
        raise MatchValidationError(
            f"At least one player must score {WINNING_SCORE} or more points to win a match"
        )

    derived_winner = calculate_winner(player1_id, player2_id, player1_score, player2_score)
    if winner_id is not None and winner_id != derived_winner:
        raise MatchValidationError("Winner does not match the submitted scores")

    return ValidatedMatch(
        player1_id=player1_id,
        player2_id=player2_id,
        player1_score=player1_score,
        player2_score=player2_score,
        winner_id=derived_winner,
    )


def apply_match_result(player: PlayerRecord, rating_delta: int, won: bool) -> PlayerRecord:
    """Return the player's record after one more match."""
    return replace(
        player,
        rating=player.rating + rating_delta,
        matches_played=player.matches_played + 1,
        matches_won=player.matches_won + (1 if won else 0),
        matches_lost=player.matches_lost + (0 if won else 1),
    )
