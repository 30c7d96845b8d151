"""
Leaderboard score ranking service.

Recomputes the 1-based rank of every score on a ranked leaderboard after scores
were inserted, improved or re-scored. Ranks follow the modified score
descending; equal scores keep their insertion order. All ranks of a leaderboard
are written with a single bulk update inside one transaction, so readers see
either the old or the new ranking.

When a Redis client is injected, each refresh holds a per-leaderboard lock so
two processes never interleave refreshes of the same leaderboard.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional, Union

from redis.exceptions import LockError
from sqlalchemy import select, update

from ssr_stats.config import Config
from ssr_stats.constants import LockConstants
from ssr_stats.data_models.records import LeaderboardRecord
from ssr_stats.data_models.results import RankRefreshResult
from ssr_stats.database.mappers import leaderboard_to_record
from ssr_stats.database.models import Leaderboard, Score
from ssr_stats.services.base import BaseService
from ssr_stats.utils.exceptions import InvalidStateError, NotFoundError
from ssr_stats.utils.redis_utils import RedisUtils
from ssr_stats.utils.time_utils import format_duration

logger = logging.getLogger(__name__)

class LeaderboardScoreRankService(BaseService):
    """Sole writer of the per-leaderboard score rank."""

    def __init__(self, session_factory, redis_client=None, lock_timeout: Optional[int] = None):
        super().__init__(session_factory)
        self.redis_client = redis_client
        self.lock_timeout = lock_timeout or Config.RANK_LOCK_TIMEOUT_SECONDS
        if self.redis_client is None:
            logger.debug("No Redis client provided. Leaderboard rank refreshes will run without locking.")

    async def get_leaderboard_record(self, leaderboard_id: int) -> LeaderboardRecord:
        """Load a leaderboard or raise NotFoundError."""
        async with self.get_session() as session:
            leaderboard = await session.get(Leaderboard, leaderboard_id)
            if leaderboard is None:
                raise NotFoundError("leaderboard", leaderboard_id)
            return leaderboard_to_record(leaderboard)

    async def refresh_leaderboard_scores_rank(
        self, leaderboard: Union[LeaderboardRecord, int]
    ) -> RankRefreshResult:
        """
        Refresh the rank of the scores for a leaderboard.

        Args:
            leaderboard: The leaderboard record, or its id

        Returns:
            RankRefreshResult with the number of ranked scores and the seconds taken;
            a zero count when the leaderboard's scores have not been seeded yet

        Raises:
            NotFoundError: If a leaderboard id does not exist
            InvalidStateError: If the leaderboard is not ranked
        """
        start_time = time.monotonic()
        if not isinstance(leaderboard, LeaderboardRecord):
            leaderboard = await self.get_leaderboard_record(leaderboard)

        if not leaderboard.ranked:
            raise InvalidStateError(
                f"leaderboard {leaderboard.id} is not ranked, refreshing scores rank is not allowed"
            )
        if not leaderboard.seeded_scores:
            logger.debug(f"Leaderboard {leaderboard.id} has no seeded scores, skipping rank refresh")
            return RankRefreshResult(leaderboard_id=leaderboard.id, scores_count=0, time_taken=0.0)

        async with self._rank_lock(leaderboard.id):
            async with self.get_session() as session:
                result = await session.execute(
                    select(Score.id, Score.score, Score.modified_score)
                    .where(Score.leaderboard_id == leaderboard.id)
                    .order_by(Score.id)
                )
                rows = result.all()

                # sorted() is stable, ties stay in insertion order
                ordered = sorted(
                    rows,
                    key=lambda row: row.modified_score if row.modified_score is not None else row.score,
                    reverse=True
                )
                rank_updates = [{'id': row.id, 'rank': index + 1} for index, row in enumerate(ordered)]

                if rank_updates:
                    await session.execute(update(Score), rank_updates)

        time_taken = time.monotonic() - start_time
        logger.info(
            f"Score ranks refreshed in {format_duration(time_taken)} for leaderboard "
            f"{leaderboard.id} ({len(rank_updates)} scores)"
        )
        return RankRefreshResult(
            leaderboard_id=leaderboard.id,
            scores_count=len(rank_updates),
            time_taken=time_taken
        )

    @asynccontextmanager
    async def _rank_lock(self, leaderboard_id: int):
        """Hold the leaderboard's Redis lock when Redis is configured."""
        if self.redis_client is None:
            yield
            return

        lock = self.redis_client.lock(
            RedisUtils.rank_lock_key(leaderboard_id),
            timeout=self.lock_timeout,
            blocking_timeout=LockConstants.RANK_LOCK_BLOCKING_TIMEOUT
        )
        if not await lock.acquire():
            raise InvalidStateError(f"rank refresh for leaderboard {leaderboard_id} is already running")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lock expired while the refresh was running
                logger.warning(f"Rank lock for leaderboard {leaderboard_id} was lost before release: {e}")
