"""
Tests for upstream leaderboard updates.
"""

import pytest
from sqlalchemy import select

from ssr_stats.data_models.tokens import LeaderboardToken
from ssr_stats.database.models import PreviousScore, Score
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.exceptions import NotFoundError

PLAYER_ID = "76561198000000001"


def _leaderboard_token(**overrides):
    payload = {
        'id': 1,
        'songName': 'Ghost',
        'difficulty': {'difficultyRaw': '_ExpertPlus_SoloStandard'},
        'maxScore': 1_000_000,
        'stars': 8.0,
        'ranked': True,
        'qualified': False,
    }
    payload.update(overrides)
    return LeaderboardToken.from_dict(payload)


async def test_creates_leaderboard(leaderboard_service):
    update = await leaderboard_service.apply_leaderboard_token(_leaderboard_token())

    assert update.created
    assert update.leaderboard.stars == 8.0
    assert update.leaderboard.difficulty == '_ExpertPlus_SoloStandard'
    assert not update.leaderboard.seeded_scores


async def test_unchanged_leaderboard_is_not_rescored(leaderboard_service, make_leaderboard):
    await make_leaderboard(1, stars=8.0, ranked=True)

    update = await leaderboard_service.apply_leaderboard_token(_leaderboard_token(songName='Ghost (Remix)'))

    assert not update.created
    assert not update.star_count_changed
    assert update.rescored_scores == 0
    assert update.leaderboard.song_name == 'Ghost (Remix)'


async def test_star_change_rescores(database, leaderboard_service, make_player, make_leaderboard, make_score, make_previous_score):
    await make_player(PLAYER_ID)
    await make_leaderboard(1, stars=8.0)
    await make_score(PLAYER_ID, 1, accuracy=95.0, pp=ScoreSaberCurve.get_pp(8.0, 95.0))
    await make_previous_score(PLAYER_ID, 1, accuracy=90.0, pp=ScoreSaberCurve.get_pp(8.0, 90.0))

    update = await leaderboard_service.apply_leaderboard_token(_leaderboard_token(stars=10.0))

    assert update.star_count_changed
    assert update.rescored_scores == 2
    assert update.affected_players == [PLAYER_ID]
    async with database.get_session() as session:
        score = (await session.execute(select(Score))).scalar_one()
        previous = (await session.execute(select(PreviousScore))).scalar_one()
    assert score.pp == pytest.approx(ScoreSaberCurve.get_pp(10.0, 95.0))
    assert score.weight == 1.0
    assert score.rank == 1
    assert previous.pp == pytest.approx(ScoreSaberCurve.get_pp(10.0, 90.0))


async def test_unranking_zeroes_pp(database, leaderboard_service, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    await make_leaderboard(1, stars=8.0)
    await make_score(PLAYER_ID, 1, accuracy=95.0, pp=300.0, weight=1.0)

    update = await leaderboard_service.apply_leaderboard_token(_leaderboard_token(ranked=False, stars=0.0))

    assert update.ranked_status_changed
    async with database.get_session() as session:
        score = (await session.execute(select(Score))).scalar_one()
    assert score.pp == 0
    assert score.weight == 0


async def test_mark_scores_seeded_refreshes_ranks(database, leaderboard_service, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    await make_leaderboard(1, seeded_scores=False)
    await make_score(PLAYER_ID, 1, 900)

    result = await leaderboard_service.mark_scores_seeded(1)

    assert result.scores_count == 1
    assert (await leaderboard_service.get_leaderboard(1)).seeded_scores


async def test_mark_unknown_leaderboard_seeded(leaderboard_service):
    with pytest.raises(NotFoundError):
        await leaderboard_service.mark_scores_seeded(5)
