"""
PP boundary calculations.

Inserting a new score worth x raw pp at position i of a player's pp-sorted list
(p_0 >= p_1 >= ...) shifts every later score one weight down, so the gain in
weighted pp is

    gain(x) = x * w^i - (1 - w) * B_i,   B_i = sum(p_j * w^j for j >= i)

gain is strictly increasing in x, which lets the insertion index be found with a
binary search; the raw pp for a wanted gain k then follows in closed form:

    x = (k + (1 - w) * B_i) / w^i
"""

import math
from typing import List, Sequence

from ssr_stats.utils.curve import ScoreSaberCurve


def _raw_pp_at_index(pps: Sequence[float], index: int, expected_pp: float) -> float:
    tail = pps[index:]
    old_tail_pp = ScoreSaberCurve.get_total_weighted_pp(tail, index)
    new_tail_pp = ScoreSaberCurve.get_total_weighted_pp(tail, index + 1)
    return (expected_pp + old_tail_pp - new_tail_pp) / ScoreSaberCurve.get_weight(index)


def _gain_at_index(pps: Sequence[float], index: int) -> float:
    # Gain of inserting a copy of pps[index] right before it
    tail = pps[index:]
    old_tail_pp = ScoreSaberCurve.get_total_weighted_pp(tail, index)
    new_tail_pp = ScoreSaberCurve.get_total_weighted_pp([pps[index], *tail], index)
    return new_tail_pp - old_tail_pp


def calc_pp_boundary(pps: Sequence[float], expected_pp: float = 1) -> float:
    """
    Get the raw pp a new score needs to raise the weighted total by expected_pp.

    Args:
        pps: The player's ranked pp values; they are filtered and sorted descending
        expected_pp: Wanted weighted pp gain

    Returns:
        Raw pp of the new score, 0 when there is nothing to compare against
    """
    sorted_pps = ScoreSaberCurve.sort_pps(pps)
    if not sorted_pps or not math.isfinite(expected_pp) or expected_pp <= 0:
        return 0.0

    left, right = 0, len(sorted_pps) - 1
    boundary_index = -1
    while left <= right:
        mid = (left + right) // 2
        if _gain_at_index(sorted_pps, mid) > expected_pp:
            boundary_index = mid
            left = mid + 1
        else:
            right = mid - 1

    return _raw_pp_at_index(sorted_pps, boundary_index + 1, expected_pp)


def calc_pp_boundaries(pps: Sequence[float], count: int = 1) -> List[float]:
    """
    Get the raw pp boundaries for +1 through +count weighted pp.

    Args:
        pps: The player's ranked pp values
        count: Number of boundary steps

    Returns:
        Strictly increasing raw pp values, or zeros when the player has no ranked scores
    """
    if count <= 0:
        return []

    sorted_pps = ScoreSaberCurve.sort_pps(pps)
    if not sorted_pps:
        return [0.0] * count

    return [calc_pp_boundary(sorted_pps, step) for step in range(1, count + 1)]


def get_weighted_pp_gain(pps: Sequence[float], raw_pp: float) -> float:
    """
    Get how much weighted pp a new score worth raw_pp would add.

    Args:
        pps: The player's ranked pp values
        raw_pp: Raw pp of the hypothetical new score

    Returns:
        Weighted pp gain, 0 for a non-positive score
    """
    if not math.isfinite(raw_pp) or raw_pp <= 0:
        return 0.0

    sorted_pps = ScoreSaberCurve.sort_pps(pps)
    if not sorted_pps:
        return raw_pp

    insert_index = next(
        (index for index, pp in enumerate(sorted_pps) if raw_pp > pp),
        len(sorted_pps)
    )
    new_pps = sorted_pps[:insert_index] + [raw_pp] + sorted_pps[insert_index:]
    return ScoreSaberCurve.get_total_weighted_pp(new_pps) - ScoreSaberCurve.get_total_weighted_pp(sorted_pps)
