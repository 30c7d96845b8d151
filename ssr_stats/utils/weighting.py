"""
Per-player score weighting.

A player's ranked scores are sorted by pp descending and each score gets the
weight WEIGHT_COEFFICIENT ** index, so the best play counts fully and every
following play counts a little less. The sum of pp * weight is the player's pp.
"""

from typing import Iterable, List, Sequence

from ssr_stats.data_models.records import ScoreRecord, WeightedScore, WeightedScoreList
from ssr_stats.utils.curve import ScoreSaberCurve


def compute_weight(index: int) -> float:
    """Weight of the score at a 0-based position in the player's pp-sorted list."""
    return ScoreSaberCurve.get_weight(index)


def sort_ranked_scores(scores: Iterable[ScoreRecord]) -> List[ScoreRecord]:
    """Ranked scores (pp > 0) sorted by pp descending; ties keep their input order."""
    return sorted((score for score in scores if score.pp > 0), key=lambda score: score.pp, reverse=True)


def build_weighted_score_list(scores: Iterable[ScoreRecord]) -> WeightedScoreList:
    """
    Assign decay weights to a player's ranked scores.

    Args:
        scores: All of the player's scores, in any order

    Returns:
        WeightedScoreList with weights strictly decreasing by position and the weighted total
    """
    weighted = tuple(
        WeightedScore(id=score.id, pp=score.pp, weight=compute_weight(index))
        for index, score in enumerate(sort_ranked_scores(scores))
    )
    return WeightedScoreList(
        scores=weighted,
        total_pp=sum(score.weighted_pp for score in weighted),
    )


def get_total_weighted_pp(pps: Sequence[float], start_index: int = 0) -> float:
    """Weighted pp total of an already sorted pp list."""
    return ScoreSaberCurve.get_total_weighted_pp(pps, start_index)
