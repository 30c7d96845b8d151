"""
Player statistic history service.

Builds one history entry per player per UTC day. Entries are upserted on
(player_id, date) so re-running the daily job overwrites the day's values
instead of duplicating them. The per-day score counters are maintained
separately by record_score_set and survive later rebuilds of the same day.
"""

from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ssr_stats.config import Config
from ssr_stats.constants import HistoryConstants
from ssr_stats.data_models.records import HistoryEntry
from ssr_stats.data_models.results import BatchRunResult
from ssr_stats.data_models.tokens import PlayerToken
from ssr_stats.database.mappers import HISTORY_COUNTERS, history_columns, history_to_entry
from ssr_stats.database.models import Player, PlayerHistory
from ssr_stats.services.base import BaseService
from ssr_stats.services.player import PlayerService
from ssr_stats.services.player_ranked import PlayerRankedService
from ssr_stats.utils.exceptions import NotFoundError
from ssr_stats.utils.logger import setup_logger
from ssr_stats.utils.time_utils import (
    format_date_minimal, get_days_ago_date, get_midnight_aligned_date
)

logger = setup_logger(__name__)


def history_insert(session):
    """INSERT construct with ON CONFLICT support for the session's database."""
    if session.get_bind().dialect.name == 'postgresql':
        return postgresql_insert(PlayerHistory)
    return sqlite_insert(PlayerHistory)


class PlayerHistoryService(BaseService):
    """Service for the daily player statistic history."""

    def __init__(
        self,
        session_factory,
        player_service: Optional[PlayerService] = None,
        ranked_service: Optional[PlayerRankedService] = None
    ):
        super().__init__(session_factory)
        self.player_service = player_service or PlayerService(session_factory)
        self.ranked_service = ranked_service or PlayerRankedService(session_factory)

    async def build_daily_history_entry(
        self, player_id: str, history_date: Optional[date] = None
    ) -> HistoryEntry:
        """
        Build and store a player's statistic history entry for one day.

        Args:
            player_id: ID of the player
            history_date: Day of the entry, today (UTC) by default

        Returns:
            The stored entry, including the day's score counters

        Raises:
            NotFoundError: If the player is not tracked
        """
        history_date = get_midnight_aligned_date(history_date)
        player = await self.player_service.get_player(player_id)
        accuracies = await self.player_service.get_player_average_accuracies(player_id)
        boundaries = await self.ranked_service.get_player_pp_boundary(player_id, 1)

        async with self.get_session() as session:
            entry = HistoryEntry(
                player_id=player_id,
                date=history_date,
                rank=player.rank,
                country_rank=player.country_rank,
                pp=player.pp,
                plus_one_pp=boundaries[0] if boundaries else 0.0,
                average_ranked_accuracy=player.average_ranked_accuracy,
                average_unranked_accuracy=accuracies.unranked_accuracy,
                average_accuracy=accuracies.average_accuracy,
                total_scores=player.total_play_count,
                total_ranked_scores=player.ranked_play_count,
                total_score=player.total_score,
                total_ranked_score=player.total_ranked_score
            )

            values = history_columns(entry)
            stmt = history_insert(session).values(player_id=player_id, date=history_date, **values)
            # Counters are owned by record_score_set, keep the stored values
            stmt = stmt.on_conflict_do_update(
                index_elements=['player_id', 'date'],
                set_={name: stmt.excluded[name] for name in values if name not in HISTORY_COUNTERS}
            )
            await session.execute(stmt)

            stored = await self._get_entry_row(session, player_id, history_date)
            entry = history_to_entry(stored)

        logger.debug(f"Built history entry for player {player_id} on {format_date_minimal(history_date)}")
        return entry

    async def _get_entry_row(self, session, player_id: str, history_date: date) -> Optional[PlayerHistory]:
        result = await session.execute(
            select(PlayerHistory).where(
                PlayerHistory.player_id == player_id,
                PlayerHistory.date == history_date
            )
        )
        return result.scalar_one_or_none()

    async def count_days_tracked(self, player_id: str) -> int:
        async with self.get_session() as session:
            result = await session.execute(
                select(func.count(PlayerHistory.id)).where(PlayerHistory.player_id == player_id)
            )
            return result.scalar_one()

    async def seed_player_history(self, token: PlayerToken, today: Optional[date] = None) -> int:
        """
        Seed rank history from the upstream comma-separated daily ranks.

        The last value of the list is the current rank and is left to the daily
        entry; earlier values map to yesterday and back. Inactive and empty
        values are skipped without taking a day, and existing entries are
        never overwritten.

        Returns:
            Number of seeded days
        """
        today = get_midnight_aligned_date(today)
        ranks = token.parse_rank_history()[:-1]

        rows = []
        days_ago = 1
        for rank in reversed(ranks):
            if rank <= 0 or rank == HistoryConstants.INACTIVE_RANK:
                continue
            rows.append({
                'player_id': token.id,
                'date': get_days_ago_date(days_ago, today),
                'rank': rank,
            })
            days_ago += 1

        if not rows:
            return 0

        async with self.get_session() as session:
            stmt = history_insert(session).values(rows)
            await session.execute(stmt.on_conflict_do_nothing(index_elements=['player_id', 'date']))

        logger.info(f"Seeded {len(rows)} days of rank history for player {token.id}")
        return len(rows)

    async def track_player_history(
        self,
        player_id: str,
        track_date: Optional[date] = None,
        player_token: Optional[PlayerToken] = None
    ) -> Optional[HistoryEntry]:
        """
        Track a player's statistics for the day.

        Args:
            player_id: ID of the player
            track_date: Day to track, today (UTC) by default
            player_token: Fresh upstream data applied before tracking

        Returns:
            The day's entry, or None when the player is inactive or not seeded yet

        Raises:
            NotFoundError: If the player is not tracked
        """
        track_date = get_midnight_aligned_date(track_date)
        if player_token is not None:
            player = await self.player_service.upsert_player_from_token(player_token)
        else:
            player = await self.player_service.get_player(player_id)

        if player.inactive:
            logger.info(f"Player {player_id} is inactive, skipping...")
            return None

        if player_token is not None and await self.count_days_tracked(player_id) == 0:
            await self.seed_player_history(player_token, track_date)

        entry = None
        if player.seeded_scores:
            entry = await self.build_daily_history_entry(player_id, track_date)
        else:
            logger.info(f"Player {player_id} has not been seeded yet, skipping history entry...")

        await self.player_service.mark_tracked(player_id)
        return entry

    async def track_all_players(
        self, track_date: Optional[date] = None, batch_size: Optional[int] = None
    ) -> BatchRunResult:
        """
        Track every player's statistics for the day.

        Players are processed in id order, one batch at a time. A failing
        player is logged and counted, the run always continues.

        Args:
            track_date: Day to track, today (UTC) by default
            batch_size: Players loaded per batch, Config.HISTORY_BATCH_SIZE by default

        Returns:
            BatchRunResult with per-player counters
        """
        track_date = get_midnight_aligned_date(track_date)
        batch_size = batch_size or Config.HISTORY_BATCH_SIZE
        result = BatchRunResult()
        last_id = None

        logger.info(f"🚀 Tracking player history for {format_date_minimal(track_date)}")
        while True:
            player_ids = await self._next_player_ids(last_id, batch_size)
            if not player_ids:
                break
            last_id = player_ids[-1]

            for player_id in player_ids:
                result.processed += 1
                try:
                    entry = await self.execute_with_retry(
                        lambda: self.track_player_history(player_id, track_date)
                    )
                except NotFoundError:
                    logger.warning(f"Player {player_id} not found, skipping...")
                    result.skipped += 1
                    continue
                except Exception as e:
                    logger.error(f"Failed to track history for player {player_id}: {e}", exc_info=True)
                    result.record_failure(player_id)
                    continue

                if entry is None:
                    result.skipped += 1
                else:
                    result.succeeded += 1

            logger.info(
                f"Progress: {result.processed} players processed "
                f"({result.succeeded} tracked, {result.skipped} skipped, {result.failed} failed)"
            )

        logger.info(
            f"✅ Tracked {result.succeeded}/{result.processed} players "
            f"for {format_date_minimal(track_date)}"
        )
        return result

    async def _next_player_ids(self, last_id: Optional[str], batch_size: int) -> List[str]:
        query = select(Player.id).order_by(Player.id).limit(batch_size)
        if last_id is not None:
            query = query.where(Player.id > last_id)
        async with self.get_session() as session:
            result = await session.execute(query)
            return list(result.scalars())

    async def record_score_set(
        self,
        player_id: str,
        ranked: bool,
        improved: bool = False,
        history_date: Optional[date] = None
    ) -> None:
        """
        Count a score set by a player on a day.

        Every score counts towards the ranked or unranked counter; an
        improvement over a previous score also counts towards the matching
        improved counter.

        Args:
            player_id: ID of the player
            ranked: Whether the score was set on a pp-eligible leaderboard
            improved: Whether the score improved the player's previous score
            history_date: Day of the score, today (UTC) by default
        """
        history_date = get_midnight_aligned_date(history_date)
        prefix = 'ranked' if ranked else 'unranked'
        counters = [f'{prefix}_scores']
        if improved:
            counters.append(f'{prefix}_scores_improved')

        async with self.get_session() as session:
            if await session.get(Player, player_id) is None:
                raise NotFoundError("player", player_id)

            table = PlayerHistory.__table__
            stmt = history_insert(session).values(
                player_id=player_id, date=history_date, **{name: 1 for name in counters}
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=['player_id', 'date'],
                set_={name: table.c[name] + 1 for name in counters}
            )
            await session.execute(stmt)

    async def get_player_statistic_history(
        self, player_id: str, start_date: date, end_date: date
    ) -> Dict[str, dict]:
        """
        Get a player's history entries between two days, both included.

        Only stored rows are returned. Days from the upstream rank history
        are already in the store once the player has been tracked, since
        tracking seeds them, and today's entry is whatever the last tracking
        run wrote.

        Returns:
            Entries keyed by YYYY-MM-DD, newest first

        Raises:
            NotFoundError: If the player is not tracked
        """
        start_date = get_midnight_aligned_date(start_date)
        end_date = get_midnight_aligned_date(end_date)
        if start_date > end_date:
            start_date, end_date = end_date, start_date

        async with self.get_session() as session:
            if await session.get(Player, player_id) is None:
                raise NotFoundError("player", player_id)

            result = await session.execute(
                select(PlayerHistory)
                .where(
                    PlayerHistory.player_id == player_id,
                    PlayerHistory.date >= start_date,
                    PlayerHistory.date <= end_date
                )
                .order_by(PlayerHistory.date.desc())
            )
            entries = [history_to_entry(row) for row in result.scalars()]

        return {format_date_minimal(entry.date): entry.to_dict() for entry in entries}
