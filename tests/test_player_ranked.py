"""
Tests for the player weighting engine and pp boundary service.
"""

import pytest
from sqlalchemy import select

from ssr_stats.database.models import Score
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.exceptions import NotFoundError
from ssr_stats.utils.pp_boundary import calc_pp_boundaries

PLAYER_ID = "76561198000000001"


async def _weights(database, player_id=PLAYER_ID):
    async with database.get_session() as session:
        result = await session.execute(
            select(Score.pp, Score.weight).where(Score.player_id == player_id).order_by(Score.pp.desc())
        )
        return [tuple(row) for row in result.all()]


async def test_update_player_score_weights(database, ranked_service, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    for leaderboard_id, pp in ((1, 300.0), (2, 500.0), (3, 400.0)):
        await make_leaderboard(leaderboard_id)
        await make_score(PLAYER_ID, leaderboard_id, pp=pp)

    weighted = await ranked_service.update_player_score_weights(PLAYER_ID)

    assert weighted.pps == (500.0, 400.0, 300.0)
    assert weighted.total_pp == pytest.approx(1165.37, abs=0.01)
    assert await _weights(database) == [
        (500.0, 1.0),
        (400.0, pytest.approx(ScoreSaberCurve.get_weight(1))),
        (300.0, pytest.approx(ScoreSaberCurve.get_weight(2))),
    ]


async def test_stale_weights_of_unranked_scores_are_reset(database, ranked_service, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)
    await make_leaderboard(2, ranked=False, stars=0.0)
    await make_score(PLAYER_ID, 1, pp=250.0)
    await make_score(PLAYER_ID, 2, pp=0.0, weight=0.8)

    await ranked_service.update_player_score_weights(PLAYER_ID)

    assert await _weights(database) == [(250.0, 1.0), (0.0, 0.0)]


async def test_unseeded_player_is_skipped(database, ranked_service, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID, seeded_scores=False)
    await make_leaderboard(1)
    await make_score(PLAYER_ID, 1, pp=250.0)

    assert await ranked_service.update_player_score_weights(PLAYER_ID) is None
    assert await _weights(database) == [(250.0, None)]


async def test_unknown_player(ranked_service):
    with pytest.raises(NotFoundError):
        await ranked_service.update_player_score_weights("missing")
    with pytest.raises(NotFoundError):
        await ranked_service.get_player_pp_boundary("missing")


async def test_player_pp_boundary(ranked_service, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    pps = [420.0, 380.5, 333.3, 120.0]
    for leaderboard_id, pp in enumerate(pps, start=1):
        await make_leaderboard(leaderboard_id)
        await make_score(PLAYER_ID, leaderboard_id, pp=pp)

    assert await ranked_service.get_player_ranked_pps(PLAYER_ID) == pps
    assert await ranked_service.get_player_pp_boundary(PLAYER_ID, 3) == pytest.approx(calc_pp_boundaries(pps, 3))
    assert await ranked_service.get_player_weighted_pp(PLAYER_ID) == pytest.approx(
        ScoreSaberCurve.get_total_weighted_pp(pps)
    )


async def test_player_without_ranked_scores_has_zero_boundary(ranked_service, make_player):
    await make_player(PLAYER_ID)

    assert await ranked_service.get_player_pp_boundary(PLAYER_ID, 2) == [0.0, 0.0]
    assert await ranked_service.get_player_pp_boundary_from_score_pp(PLAYER_ID, 150.0) == 150.0
