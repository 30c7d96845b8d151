"""
Leaderboard service.

Applies upstream leaderboard updates. When a leaderboard's ranked status or
star count changes, the pp of every score and previous score on it is
recomputed, the affected players are re-weighted and the ranks refreshed.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, update

from ssr_stats.data_models.records import LeaderboardRecord
from ssr_stats.data_models.results import LeaderboardUpdate, RankRefreshResult
from ssr_stats.data_models.tokens import LeaderboardToken
from ssr_stats.database.mappers import leaderboard_to_record
from ssr_stats.database.models import Leaderboard, PreviousScore, Score
from ssr_stats.services.base import BaseService
from ssr_stats.services.leaderboard_score_rank import LeaderboardScoreRankService
from ssr_stats.services.player_ranked import PlayerRankedService
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.exceptions import NotFoundError
from ssr_stats.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class LeaderboardService(BaseService):
    """Service for leaderboard records and their ranked state."""

    def __init__(
        self,
        session_factory,
        ranked_service: Optional[PlayerRankedService] = None,
        rank_service: Optional[LeaderboardScoreRankService] = None
    ):
        super().__init__(session_factory)
        self.ranked_service = ranked_service or PlayerRankedService(session_factory)
        self.rank_service = rank_service or LeaderboardScoreRankService(session_factory)

    async def get_leaderboard(self, leaderboard_id: int) -> LeaderboardRecord:
        """
        Get a leaderboard.

        Raises:
            NotFoundError: If the leaderboard is not tracked
        """
        async with self.get_session() as session:
            leaderboard = await session.get(Leaderboard, leaderboard_id)
            if leaderboard is None:
                raise NotFoundError("leaderboard", leaderboard_id)
            return leaderboard_to_record(leaderboard)

    async def apply_leaderboard_token(self, token: LeaderboardToken) -> LeaderboardUpdate:
        """
        Create or update a leaderboard from upstream data.

        Args:
            token: Validated upstream leaderboard data

        Returns:
            LeaderboardUpdate describing what changed
        """
        async with self.get_session() as session:
            leaderboard = await session.get(Leaderboard, token.id)
            created = leaderboard is None
            if created:
                leaderboard = Leaderboard(id=token.id, seeded_scores=False)
                session.add(leaderboard)

            ranked_status_changed = not created and bool(leaderboard.ranked) != token.ranked
            star_count_changed = not created and (leaderboard.stars or 0.0) != token.stars

            leaderboard.song_name = token.song_name
            leaderboard.difficulty = token.difficulty
            leaderboard.max_score = token.max_score
            leaderboard.stars = token.stars
            leaderboard.ranked = token.ranked
            leaderboard.qualified = token.qualified
            leaderboard.last_refreshed = utc_now()

            await session.flush()
            record = leaderboard_to_record(leaderboard)

        if created:
            logger.info(f"Started tracking leaderboard {record.id} ({record.song_name} {record.difficulty})")
            return LeaderboardUpdate(leaderboard=record, created=True)

        if not (ranked_status_changed or star_count_changed):
            return LeaderboardUpdate(leaderboard=record)

        if ranked_status_changed:
            logger.info(f"Leaderboard {record.id} is now {'ranked' if record.ranked else 'unranked'}")
        if star_count_changed:
            logger.info(f"Leaderboard {record.id} star count changed to {record.stars}")

        rescored, affected_players = await self.rescore_leaderboard(record)
        await self._reweight_players(affected_players)
        if record.ranked and record.seeded_scores:
            await self.rank_service.refresh_leaderboard_scores_rank(record)

        return LeaderboardUpdate(
            leaderboard=record,
            ranked_status_changed=ranked_status_changed,
            star_count_changed=star_count_changed,
            rescored_scores=rescored,
            affected_players=affected_players
        )

    async def rescore_leaderboard(self, leaderboard: LeaderboardRecord) -> Tuple[int, List[str]]:
        """
        Recompute the pp of every score and previous score on a leaderboard.

        Scores on a leaderboard that is not pp-eligible are worth 0pp.

        Returns:
            Number of rescored rows and the sorted ids of players with a current score
        """
        rescored = 0
        affected_players = set()

        async with self.get_session() as session:
            for model in (Score, PreviousScore):
                result = await session.execute(
                    select(model.id, model.player_id, model.accuracy)
                    .where(model.leaderboard_id == leaderboard.id)
                )
                rows = result.all()

                pp_updates = [
                    {
                        'id': row.id,
                        'pp': ScoreSaberCurve.get_pp(leaderboard.stars, row.accuracy)
                        if leaderboard.is_pp_eligible else 0.0
                    }
                    for row in rows
                ]
                if pp_updates:
                    await session.execute(update(model), pp_updates)

                rescored += len(pp_updates)
                if model is Score:
                    affected_players.update(row.player_id for row in rows)

        logger.info(
            f"Rescored {rescored} scores on leaderboard {leaderboard.id} "
            f"({len(affected_players)} players affected)"
        )
        return rescored, sorted(affected_players)

    async def _reweight_players(self, player_ids: List[str]) -> None:
        for player_id in player_ids:
            try:
                await self.ranked_service.update_player_score_weights(player_id)
            except NotFoundError:
                logger.warning(f"Player {player_id} not found while re-weighting, skipping...")

    async def mark_scores_seeded(self, leaderboard_id: int) -> Optional[RankRefreshResult]:
        """
        Flag that all scores of a leaderboard have been fetched.

        Ranked leaderboards get their ranks refreshed right away.

        Returns:
            The rank refresh result, or None for an unranked leaderboard

        Raises:
            NotFoundError: If the leaderboard is not tracked
        """
        async with self.get_session() as session:
            result = await session.execute(
                update(Leaderboard).where(Leaderboard.id == leaderboard_id).values(seeded_scores=True)
            )
            if result.rowcount == 0:
                raise NotFoundError("leaderboard", leaderboard_id)

        record = await self.get_leaderboard(leaderboard_id)
        if not record.ranked:
            return None
        return await self.rank_service.refresh_leaderboard_scores_rank(record)
