"""
Pytest configuration and fixtures for the stats core tests.

Every test gets its own file-backed SQLite database under tmp_path, so tests
never share state. Record factories insert rows directly, bypassing the
services, to set up exact scenarios.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "ssr_stats_test_logs"))

import pytest
import pytest_asyncio

from ssr_stats.database.database import Database
from ssr_stats.database.models import Leaderboard, Player, PreviousScore, Score
from ssr_stats.services.leaderboard import LeaderboardService
from ssr_stats.services.leaderboard_score_rank import LeaderboardScoreRankService
from ssr_stats.services.player import PlayerService
from ssr_stats.services.player_history import PlayerHistoryService
from ssr_stats.services.player_ranked import PlayerRankedService
from ssr_stats.services.score_tracking import ScoreTrackingService

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Initialized database with all tables, disposed after the test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'ssr_stats_test.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database):
    return database.session_factory


@pytest.fixture
def player_service(session_factory):
    return PlayerService(session_factory)


@pytest.fixture
def ranked_service(session_factory):
    return PlayerRankedService(session_factory)


@pytest.fixture
def rank_service(session_factory):
    return LeaderboardScoreRankService(session_factory)


@pytest.fixture
def history_service(session_factory, player_service, ranked_service):
    return PlayerHistoryService(session_factory, player_service, ranked_service)


@pytest.fixture
def leaderboard_service(session_factory, ranked_service, rank_service):
    return LeaderboardService(session_factory, ranked_service, rank_service)


@pytest.fixture
def score_tracking_service(session_factory, leaderboard_service, ranked_service, rank_service, history_service):
    return ScoreTrackingService(
        session_factory,
        leaderboard_service=leaderboard_service,
        ranked_service=ranked_service,
        rank_service=rank_service,
        history_service=history_service
    )


# ============================================================================
# RECORD FACTORIES
# ============================================================================

@pytest.fixture
def make_player(database):
    async def _make_player(player_id="76561198000000001", **overrides):
        values = {
            'name': f"player-{player_id[-4:]}",
            'country': 'GB',
            'rank': 100,
            'country_rank': 10,
            'pp': 10000.0,
            'average_ranked_accuracy': 94.5,
            'total_score': 50_000_000,
            'total_ranked_score': 30_000_000,
            'total_play_count': 400,
            'ranked_play_count': 250,
            'inactive': False,
            'seeded_scores': True,
        }
        values.update(overrides)
        async with database.transaction() as session:
            session.add(Player(id=player_id, **values))
        return player_id
    return _make_player


@pytest.fixture
def make_leaderboard(database):
    async def _make_leaderboard(leaderboard_id=1, **overrides):
        values = {
            'song_name': f"song-{leaderboard_id}",
            'difficulty': 'ExpertPlus',
            'stars': 8.0,
            'max_score': 1_000_000,
            'ranked': True,
            'qualified': False,
            'seeded_scores': True,
        }
        values.update(overrides)
        async with database.transaction() as session:
            session.add(Leaderboard(id=leaderboard_id, **values))
        return leaderboard_id
    return _make_leaderboard


@pytest.fixture
def make_score(database):
    counter = {'value': 0}

    async def _make_score(player_id, leaderboard_id, score=900_000, model=Score, **overrides):
        counter['value'] += 1
        values = {
            'score_id': f"score-{counter['value']}",
            'modified_score': score,
            'accuracy': 90.0,
            'pp': 0.0,
            'modifiers': '',
            'timestamp': BASE_TIME + timedelta(minutes=counter['value']),
        }
        values.update(overrides)
        row = model(player_id=player_id, leaderboard_id=leaderboard_id, score=score, **values)
        async with database.transaction() as session:
            session.add(row)
            await session.flush()
            return row.id
    return _make_score


@pytest.fixture
def make_previous_score(make_score):
    async def _make_previous_score(player_id, leaderboard_id, score=800_000, **overrides):
        return await make_score(player_id, leaderboard_id, score, model=PreviousScore, **overrides)
    return _make_previous_score
