"""
Domain-wide constants for the ScoreSaber stats core.

This module contains the magic numbers of the ranked scoring system and the
batch jobs so they live in one place.
"""

class CurveConstants:
    """Constants of the ranked pp curve."""

    # Base pp of a 1 star map at the 95% reference accuracy
    STAR_MULTIPLIER = 42.117208413

    # Decay applied per position in a player's pp-sorted score list
    WEIGHT_COEFFICIENT = 0.965

    # Accuracy is always handled as a percentage
    MIN_ACCURACY = 0.0
    MAX_ACCURACY = 100.0

class ScoreConstants:
    """Constants for score ingestion."""

    # Score multiplier applied by the No-Fail modifier
    NO_FAIL_MULTIPLIER = 0.5

    # Modifier codes accepted from the upstream API
    KNOWN_MODIFIERS = frozenset({
        "DA", "FS", "SF", "SS", "GN", "NA", "NB", "NF", "NO", "PM", "SC", "IF", "BE",
    })

class HistoryConstants:
    """Constants for player statistic history."""

    # Rank reported by the upstream API for inactive days
    INACTIVE_RANK = 999_999

    # Date key format used in statistic history responses
    DATE_KEY_FORMAT = "%Y-%m-%d"

class LockConstants:
    """Constants for Redis locks."""

    RANK_LOCK_PREFIX = "leaderboard_rank_lock"

    # Seconds to wait for another process to release a rank lock
    RANK_LOCK_BLOCKING_TIMEOUT = 10
