"""
Tests for the backfill migrations. Every migration is run twice to check that a
re-run leaves already migrated records alone.
"""

import math
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from ssr_stats.database.models import Player, PlayerHistory, PreviousScore, Score
from ssr_stats.migrations import MIGRATIONS, run_migrations
from ssr_stats.migrations.backfill_joined_dates import BackfillJoinedDates
from ssr_stats.migrations.backfill_score_ranks import BackfillScoreRanks
from ssr_stats.migrations.backfill_score_weights import BackfillScoreWeights
from ssr_stats.migrations.fix_missing_modified_score import derive_modified_score
from ssr_stats.migrations.migrate_player_history import MigratePlayerHistory, parse_legacy_history
from ssr_stats.migrations.split_previous_scores import SplitPreviousScores

PLAYER_ID = "76561198000000001"
OTHER_PLAYER_ID = "76561198000000002"


async def _all(database, query):
    async with database.get_session() as session:
        return (await session.execute(query)).scalars().all()


async def test_backfill_joined_dates(database, make_player, make_leaderboard, make_score, make_previous_score):
    await make_player(PLAYER_ID)
    await make_player(OTHER_PLAYER_ID)
    await make_leaderboard(1)
    earliest = datetime(2019, 1, 2, 3, 4, tzinfo=timezone.utc)
    await make_score(PLAYER_ID, 1)
    await make_previous_score(PLAYER_ID, 1, timestamp=earliest)

    result = await BackfillJoinedDates(database, batch_size=1).run()
    rerun = await BackfillJoinedDates(database).run()

    assert (result.processed, result.succeeded, result.skipped) == (2, 1, 1)
    assert result.batches == 2
    # The player without scores stays pending
    assert (rerun.processed, rerun.succeeded) == (1, 0)
    async with database.get_session() as session:
        player = await session.get(Player, PLAYER_ID)
        assert player.joined_date.replace(tzinfo=timezone.utc) == earliest


async def test_split_previous_scores(database, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)
    await make_leaderboard(2)
    await make_score(PLAYER_ID, 1, 800_000, score_id="old")
    await make_score(PLAYER_ID, 1, 850_000, score_id="older-but-later", weight=0.9)
    await make_score(PLAYER_ID, 1, 900_000, score_id="newest")
    await make_score(PLAYER_ID, 2, 700_000, score_id="single")

    result = await SplitPreviousScores(database).run()
    rerun = await SplitPreviousScores(database).run()

    assert result.succeeded == 1
    assert rerun.processed == 0
    current = await _all(database, select(Score.score_id).order_by(Score.score_id))
    previous = await _all(database, select(PreviousScore))
    assert current == ["newest", "single"]
    assert sorted(score.score_id for score in previous) == ["old", "older-but-later"]
    assert all(score.weight == 0 for score in previous)


async def test_backfill_score_ranks(database, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    await make_player(OTHER_PLAYER_ID)
    await make_leaderboard(1)
    await make_leaderboard(2, ranked=False, stars=0.0)
    await make_score(PLAYER_ID, 1, 900)
    await make_score(OTHER_PLAYER_ID, 1, 950)
    await make_score(PLAYER_ID, 2, 500)

    result = await BackfillScoreRanks(database).run()
    rerun = await BackfillScoreRanks(database).run()

    assert result.succeeded == 1
    assert rerun.processed == 0
    ranks = await _all(database, select(Score.rank).where(Score.leaderboard_id == 1).order_by(Score.rank))
    assert ranks == [1, 2]


async def test_backfill_score_weights(database, make_player, make_leaderboard, make_score):
    await make_player(PLAYER_ID)
    await make_player(OTHER_PLAYER_ID, seeded_scores=False)
    await make_leaderboard(1)
    await make_leaderboard(2)
    await make_score(PLAYER_ID, 1, pp=200.0)
    await make_score(PLAYER_ID, 2, pp=400.0)
    await make_score(OTHER_PLAYER_ID, 1, pp=100.0)

    result = await BackfillScoreWeights(database).run()
    rerun = await BackfillScoreWeights(database).run()

    assert result.succeeded == 1
    assert rerun.processed == 0
    weights = await _all(
        database, select(Score.weight).where(Score.player_id == PLAYER_ID).order_by(Score.pp.desc())
    )
    assert weights == [1.0, pytest.approx(0.965)]


async def test_fix_missing_modified_score(database, make_player, make_leaderboard, make_score, make_previous_score):
    await make_player(PLAYER_ID)
    await make_leaderboard(1)
    await make_leaderboard(2)
    await make_score(PLAYER_ID, 1, 400_000, modified_score=None, modifiers='NF,GN')
    await make_score(PLAYER_ID, 2, 700_000, modified_score=None)
    await make_previous_score(PLAYER_ID, 1, 300_000, modified_score=None, modifiers='NF')

    results = await run_migrations(MIGRATIONS['fix_missing_modified_score'](database))
    reruns = await run_migrations(MIGRATIONS['fix_missing_modified_score'](database))

    assert [result.succeeded for result in results] == [2, 1]
    assert [rerun.processed for rerun in reruns] == [0, 0]
    modified = await _all(database, select(Score.modified_score).order_by(Score.leaderboard_id))
    assert modified == [800_000, 700_000]
    assert await _all(database, select(PreviousScore.modified_score)) == [600_000]


def test_derive_modified_score():
    assert derive_modified_score(400_000, ('NF',)) == 800_000
    assert derive_modified_score(400_000, ('GN', 'DA')) == 400_000


def test_parse_legacy_history():
    rows = parse_legacy_history(PLAYER_ID, {
        '2023-12-30': {
            'rank': 150,
            'pp': 8000.25,
            'plusOnePp': float('nan'),
            'accuracy': {'averageRankedAccuracy': 94.2},
            'scores': {'rankedScores': 4, 'unrankedScores': 'many'},
        },
        '2023-12-31': {'countryRank': True},
        'yesterday': {'rank': 1},
    })

    assert rows == [{
        'player_id': PLAYER_ID,
        'date': date(2023, 12, 30),
        'rank': 150,
        'pp': 8000.25,
        'average_ranked_accuracy': 94.2,
        'ranked_scores': 4,
    }]
    assert all(math.isfinite(value) for value in rows[0].values() if isinstance(value, float))


async def test_migrate_player_history(database, make_player):
    await make_player(PLAYER_ID, statistic_history={
        '2024-01-01': {'rank': 300, 'pp': 7000.0, 'scores': {'rankedScores': 2}},
        '2024-01-02': {'rank': 280, 'pp': 7100.5},
    })
    await make_player(OTHER_PLAYER_ID)
    async with database.transaction() as session:
        session.add(PlayerHistory(player_id=PLAYER_ID, date=date(2024, 1, 2), rank=275))

    result = await MigratePlayerHistory(database).run()
    rerun = await MigratePlayerHistory(database).run()

    assert (result.processed, result.succeeded) == (1, 1)
    assert rerun.processed == 0
    rows = await _all(database, select(PlayerHistory).order_by(PlayerHistory.date))
    assert [(row.date, row.rank, row.ranked_scores) for row in rows] == [
        (date(2024, 1, 1), 300, 2),
        (date(2024, 1, 2), 275, 0),
    ]
    async with database.get_session() as session:
        assert (await session.get(Player, PLAYER_ID)).statistic_history is None


async def test_failing_record_does_not_abort_migration(database, make_player, monkeypatch):
    await make_player(PLAYER_ID)
    await make_player(OTHER_PLAYER_ID)
    migration = BackfillJoinedDates(database)
    original = migration.migrate_record

    async def flaky_migrate(session, record):
        if record.id == PLAYER_ID:
            raise ValueError("corrupt record")
        return await original(session, record)

    monkeypatch.setattr(migration, "migrate_record", flaky_migrate)

    result = await migration.run()

    assert result.processed == 2
    assert result.failed_ids == [PLAYER_ID]
    assert result.skipped == 1
