"""
Tests for score ingestion.
"""

from datetime import date

import pytest
from sqlalchemy import select

from ssr_stats.data_models.tokens import ScoreToken
from ssr_stats.database.models import PlayerHistory, PreviousScore, Score
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.exceptions import NotFoundError

PLAYER_ID = "76561198000000001"
OTHER_PLAYER_ID = "76561198000000002"


def _score_token(score_id="1001", base_score=950_000, player_id=PLAYER_ID, **overrides):
    payload = {
        'id': score_id,
        'baseScore': base_score,
        'modifiedScore': base_score,
        'pp': 0,
        'rank': 3,
        'modifiers': '',
        'missedNotes': 1,
        'badCuts': 2,
        'fullCombo': False,
        'maxCombo': 812,
        'timeSet': '2024-03-01T18:30:00Z',
    }
    payload.update(overrides)
    return ScoreToken.from_dict(payload, player_id=player_id)


async def test_track_ranked_score(database, score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1, stars=6.5, max_score=1_000_000)

    tracked = await score_tracking_service.track_score(_score_token(), 1)

    assert tracked.tracked
    assert not tracked.has_previous_score
    assert tracked.score.accuracy == pytest.approx(95.0)
    assert tracked.score.pp == pytest.approx(ScoreSaberCurve.get_pp(6.5, 95.0))
    assert tracked.score.misses == 3

    async with database.get_session() as session:
        score = (await session.execute(select(Score))).scalar_one()
        assert score.weight == 1.0
        assert score.rank == 1
        history = (await session.execute(select(PlayerHistory))).scalar_one()
        assert history.date == date(2024, 3, 1)
        assert (history.ranked_scores, history.unranked_scores) == (1, 0)


async def test_unranked_score_is_worth_nothing(database, score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1, ranked=False, stars=0.0)

    tracked = await score_tracking_service.track_score(_score_token(), 1)

    assert tracked.score.pp == 0
    async with database.get_session() as session:
        history = (await session.execute(select(PlayerHistory))).scalar_one()
        assert (history.ranked_scores, history.unranked_scores) == (0, 1)


async def test_modified_score_defaults_to_base_score(score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)

    tracked = await score_tracking_service.track_score(_score_token(modifiedScore=None), 1)

    assert tracked.score.modified_score == 950_000


async def test_unknown_max_score_gives_zero_accuracy(score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1, max_score=0)

    tracked = await score_tracking_service.track_score(_score_token(), 1)

    assert tracked.score.accuracy == 0
    assert tracked.score.pp == 0


async def test_improvement_moves_previous_score(database, score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)
    await score_tracking_service.track_score(_score_token("1001", 900_000), 1)

    tracked = await score_tracking_service.track_score(_score_token("1002", 960_000), 1)

    assert tracked.has_previous_score
    assert tracked.improved
    async with database.get_session() as session:
        current = (await session.execute(select(Score))).scalars().all()
        previous = (await session.execute(select(PreviousScore))).scalars().all()
        history = (await session.execute(select(PlayerHistory))).scalar_one()
    assert [score.score_id for score in current] == ["1002"]
    assert [score.score_id for score in previous] == ["1001"]
    assert previous[0].weight == 0
    assert (history.ranked_scores, history.ranked_scores_improved) == (2, 1)


async def test_worse_score_is_not_an_improvement(score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)
    await score_tracking_service.track_score(_score_token("1001", 960_000), 1)

    tracked = await score_tracking_service.track_score(_score_token("1002", 900_000), 1)

    assert tracked.has_previous_score
    assert not tracked.improved


async def test_duplicate_and_untracked_scores_are_ignored(score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)
    await score_tracking_service.track_score(_score_token("1001"), 1)

    duplicate = await score_tracking_service.track_score(_score_token("1001"), 1)
    untracked = await score_tracking_service.track_score(_score_token("2001", player_id="123"), 1)

    assert not duplicate.tracked
    assert not untracked.tracked


async def test_ranks_refresh_across_players(database, score_tracking_service, make_player, make_leaderboard):
    await make_player(PLAYER_ID)
    await make_player(OTHER_PLAYER_ID)
    await make_leaderboard(1)

    await score_tracking_service.track_score(_score_token("1001", 900_000), 1)
    await score_tracking_service.track_score(_score_token("1002", 950_000, player_id=OTHER_PLAYER_ID), 1)

    async with database.get_session() as session:
        result = await session.execute(select(Score.player_id, Score.rank).order_by(Score.rank))
        assert [tuple(row) for row in result.all()] == [(OTHER_PLAYER_ID, 1), (PLAYER_ID, 2)]


async def test_unknown_leaderboard(score_tracking_service, make_player):
    await make_player(PLAYER_ID)

    with pytest.raises(NotFoundError):
        await score_tracking_service.track_score(_score_token(), 99)
