"""
Tests for the command line entry point.
"""

import json

import pytest

from ssr_stats.main import StatsApp, build_parser, main
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.exceptions import NotFoundError


def test_get_pp_command(capsys):
    assert main(['get-pp', '5', '100']) == 0

    output = json.loads(capsys.readouterr().out)
    assert output['pp'] == pytest.approx(ScoreSaberCurve.get_pp(5, 100))


def test_parser_rejects_unknown_migration():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['migrate', 'drop_everything'])


def test_parser_reads_dates():
    args = build_parser().parse_args(['track-history', '--date', '2024-03-01', '--batch-size', '10'])

    assert args.date.isoformat() == '2024-03-01'
    assert args.batch_size == 10


@pytest.fixture
async def app(tmp_path):
    app = StatsApp(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    await app.setup()
    yield app
    await app.close()


async def test_migrate_all_on_empty_database(app):
    results = await app.migrate(build_parser().parse_args(['migrate', 'all']))

    assert [result['processed'] for result in results] == [0] * 7
    assert results[0]['name'] == 'migrate_player_history'


async def test_pp_boundary_for_unknown_player(app):
    with pytest.raises(NotFoundError):
        await app.pp_boundary(build_parser().parse_args(['pp-boundary', 'missing']))
