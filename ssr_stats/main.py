"""
Command line entry point for the stats core.

Usage:
    python -m ssr_stats track-history [--date YYYY-MM-DD] [--batch-size N]
    python -m ssr_stats build-history PLAYER_ID [--date YYYY-MM-DD]
    python -m ssr_stats refresh-ranks LEADERBOARD_ID
    python -m ssr_stats pp-boundary PLAYER_ID [--count N]
    python -m ssr_stats get-pp STARS ACCURACY
    python -m ssr_stats migrate {all,<name>} [--batch-size N]
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ssr_stats.config import Config
from ssr_stats.database.database import Database
from ssr_stats.migrations import MIGRATIONS, run_migrations
from ssr_stats.services.leaderboard_score_rank import LeaderboardScoreRankService
from ssr_stats.services.player import PlayerService
from ssr_stats.services.player_history import PlayerHistoryService
from ssr_stats.services.player_ranked import PlayerRankedService
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.exceptions import StatsException, StoreError
from ssr_stats.utils.logger import setup_logger
from ssr_stats.utils.redis_utils import RedisUtils
from ssr_stats.utils.time_utils import format_date_minimal, parse_date_key

logger = setup_logger(__name__)


class StatsApp:
    """Wires the database, the optional Redis client and the services together."""

    def __init__(self, database_url: Optional[str] = None):
        self.db = Database(database_url)
        self.redis_client = None
        self.player_service: Optional[PlayerService] = None
        self.ranked_service: Optional[PlayerRankedService] = None
        self.rank_service: Optional[LeaderboardScoreRankService] = None
        self.history_service: Optional[PlayerHistoryService] = None

    async def setup(self):
        await self.db.initialize()
        self.redis_client = await RedisUtils.create_redis_client()

        session_factory = self.db.session_factory
        self.player_service = PlayerService(session_factory)
        self.ranked_service = PlayerRankedService(session_factory)
        self.rank_service = LeaderboardScoreRankService(session_factory, self.redis_client)
        self.history_service = PlayerHistoryService(session_factory, self.player_service, self.ranked_service)

    async def close(self):
        if self.redis_client is not None:
            await self.redis_client.aclose()
        await self.db.close()

    async def track_history(self, args) -> dict:
        result = await self.history_service.track_all_players(args.date, args.batch_size)
        return asdict(result)

    async def build_history(self, args) -> dict:
        entry = await self.history_service.build_daily_history_entry(args.player_id, args.date)
        return {format_date_minimal(entry.date): entry.to_dict()}

    async def refresh_ranks(self, args) -> dict:
        return asdict(await self.rank_service.refresh_leaderboard_scores_rank(args.leaderboard_id))

    async def pp_boundary(self, args) -> dict:
        boundaries = await self.ranked_service.get_player_pp_boundary(args.player_id, args.count)
        return {'playerId': args.player_id, 'boundaries': boundaries}

    async def migrate(self, args) -> List[dict]:
        names = list(MIGRATIONS) if args.name == 'all' else [args.name]
        migrations = []
        for name in names:
            migrations.extend(MIGRATIONS[name](self.db, args.batch_size))
        return [asdict(result) for result in await run_migrations(migrations)]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='ssr_stats', description='ScoreSaber statistics core')
    subparsers = parser.add_subparsers(dest='command', required=True)

    track = subparsers.add_parser('track-history', help='Track every player\'s statistics for a day')
    track.add_argument('--date', type=parse_date_key, help='Day to track (YYYY-MM-DD), today by default')
    track.add_argument('--batch-size', type=int, help='Players per batch')

    build = subparsers.add_parser('build-history', help='Build one player\'s history entry')
    build.add_argument('player_id')
    build.add_argument('--date', type=parse_date_key, help='Day of the entry (YYYY-MM-DD), today by default')

    refresh = subparsers.add_parser('refresh-ranks', help='Refresh the score ranks of a leaderboard')
    refresh.add_argument('leaderboard_id', type=int)

    boundary = subparsers.add_parser('pp-boundary', help='Raw pp needed for +N weighted pp')
    boundary.add_argument('player_id')
    boundary.add_argument('--count', type=int, default=Config.PP_BOUNDARY_COUNT, help='Boundary steps')

    get_pp = subparsers.add_parser('get-pp', help='PP of a score at the given stars and accuracy')
    get_pp.add_argument('stars', type=float)
    get_pp.add_argument('accuracy', type=float, help='Accuracy percentage (0-100)')

    migrate = subparsers.add_parser('migrate', help='Run backfill migrations')
    migrate.add_argument('name', choices=['all', *MIGRATIONS], help='Migration to run')
    migrate.add_argument('--batch-size', type=int, help='Records per batch')

    return parser


COMMANDS = {
    'track-history': StatsApp.track_history,
    'build-history': StatsApp.build_history,
    'refresh-ranks': StatsApp.refresh_ranks,
    'pp-boundary': StatsApp.pp_boundary,
    'migrate': StatsApp.migrate,
}


async def run(args) -> int:
    """Run a parsed command, returning the process exit code."""
    if args.command == 'get-pp':
        print(json.dumps({'pp': ScoreSaberCurve.get_pp(args.stars, args.accuracy)}))
        return 0

    Config.validate()
    app = StatsApp()
    try:
        await app.setup()
        try:
            output = await COMMANDS[args.command](app, args)
        except SQLAlchemyError as e:
            raise StoreError(args.command, str(e)) from e
        print(json.dumps(output, indent=2, default=str))
        return 0
    except StatsException as e:
        logger.error(f"{args.command} failed: {e}")
        print(e.user_message, file=sys.stderr)
        return 1
    finally:
        await app.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
