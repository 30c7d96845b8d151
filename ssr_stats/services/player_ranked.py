"""
Player ranked pp service.

Keeps the per-player score weights in sync with the pp of the player's scores
and answers pp boundary questions from the player's ranked pp list.
"""

import time
from typing import List, Optional

from sqlalchemy import select, update

from ssr_stats.data_models.records import WeightedScoreList
from ssr_stats.database.mappers import score_to_record
from ssr_stats.database.models import Player, Score
from ssr_stats.services.base import BaseService
from ssr_stats.utils.exceptions import NotFoundError
from ssr_stats.utils.logger import setup_logger
from ssr_stats.utils.pp_boundary import calc_pp_boundaries, get_weighted_pp_gain
from ssr_stats.utils.time_utils import format_duration
from ssr_stats.utils.weighting import build_weighted_score_list

logger = setup_logger(__name__)


class PlayerRankedService(BaseService):
    """Sole writer of the per-player score weight."""

    async def _ensure_player(self, session, player_id: str) -> Player:
        player = await session.get(Player, player_id)
        if player is None:
            raise NotFoundError("player", player_id)
        return player

    async def update_player_score_weights(self, player_id: str) -> Optional[WeightedScoreList]:
        """
        Recompute the weights of a player's scores.

        Ranked scores (pp > 0) are sorted by pp descending and weighted by position;
        scores that lost their pp get a weight of 0. Everything is written with one
        bulk update.

        Args:
            player_id: ID of the player to update

        Returns:
            The weighted score list, or None if the player's scores are not seeded yet

        Raises:
            NotFoundError: If the player does not exist
        """
        start_time = time.monotonic()
        async with self.get_session() as session:
            player = await self._ensure_player(session, player_id)
            if not player.seeded_scores:
                logger.info(f"Player {player_id} has not been seeded yet, skipping score weight update...")
                return None

            result = await session.execute(
                select(Score).where(Score.player_id == player_id).order_by(Score.id)
            )
            scores = [score_to_record(row) for row in result.scalars()]

            weighted = build_weighted_score_list(scores)
            weight_updates = [{'id': score.id, 'weight': score.weight} for score in weighted.scores]
            weight_updates.extend(
                {'id': score.id, 'weight': 0.0}
                for score in scores
                if score.pp <= 0 and score.weight
            )

            if weight_updates:
                await session.execute(update(Score), weight_updates)

        logger.info(
            f"Score weights updated in {format_duration(time.monotonic() - start_time)} for player "
            f"{player_id} ({len(weighted)} ranked scores, {weighted.total_pp:.2f}pp)"
        )
        return weighted

    async def get_player_ranked_pps(self, player_id: str) -> List[float]:
        """
        Get the pp of a player's ranked scores, highest first.

        Raises:
            NotFoundError: If the player does not exist
        """
        async with self.get_session() as session:
            await self._ensure_player(session, player_id)
            result = await session.execute(
                select(Score.pp)
                .where(Score.player_id == player_id, Score.pp > 0)
                .order_by(Score.pp.desc())
            )
            return [pp for pp in result.scalars()]

    async def get_player_weighted_pp(self, player_id: str) -> float:
        """Get the total weighted pp of a player's ranked scores."""
        async with self.get_session() as session:
            await self._ensure_player(session, player_id)
            result = await session.execute(select(Score).where(Score.player_id == player_id))
            return build_weighted_score_list(score_to_record(row) for row in result.scalars()).total_pp

    async def get_player_pp_boundary(self, player_id: str, boundary_count: int = 1) -> List[float]:
        """
        Get the raw pp a new score needs for +1 through +boundary_count weighted pp.

        Args:
            player_id: ID of the player
            boundary_count: Number of boundary steps

        Returns:
            Strictly increasing raw pp values, zeros when the player has no ranked scores

        Raises:
            NotFoundError: If the player does not exist
        """
        pps = await self.get_player_ranked_pps(player_id)
        return calc_pp_boundaries(pps, boundary_count)

    async def get_player_pp_boundary_from_score_pp(self, player_id: str, raw_pp: float) -> float:
        """Get the weighted pp a new score worth raw_pp would add for a player."""
        pps = await self.get_player_ranked_pps(player_id)
        return get_weighted_pp_gain(pps, raw_pp)
