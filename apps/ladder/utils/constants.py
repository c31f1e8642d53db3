"""
Constants used across the rating and award system.
"""

# ELO calculation constants
K = 32  # K-factor for every match
INITIAL_RATING = 1000
WINNING_SCORE = 11  # One side must reach this to win a game

# Snapshot cache freshness window
CACHE_TTL_SECONDS = 5 * 60

# Settings table key used to remember the last month awards were saved for
AWARDS_MARKER_KEY = "awards_last_saved_month"

# Award categories, in display order
MOST_POINTS = "mostPoints"
HIGHEST_ELO = "highestElo"
WINNING_STREAK = "winningStreak"
GIANT_KILLER = "giantKiller"
SOCIAL_BUTTERFLY = "socialButterfly"
BEST_DEFENSE = "bestDefense"
HIGHEST_MATCH = "highestMatch"
ELO_SWING = "eloSwing"
BIGGEST_LOSER = "biggestLoser"
RIVALRY_AWARD = "rivalryAward"

PLAYER_CATEGORIES = (
    MOST_POINTS,
    HIGHEST_ELO,
    WINNING_STREAK,
    GIANT_KILLER,
    SOCIAL_BUTTERFLY,
    BEST_DEFENSE,
    HIGHEST_MATCH,
    ELO_SWING,
    BIGGEST_LOSER,
)
AWARD_CATEGORIES = PLAYER_CATEGORIES + (RIVALRY_AWARD,)
