"""
Player service.

Applies upstream player snapshots and answers per-player lookups used by the
history builder.
"""

import math
from typing import Optional

from sqlalchemy import select, update

from ssr_stats.constants import CurveConstants, HistoryConstants
from ssr_stats.data_models.records import PlayerSnapshot
from ssr_stats.data_models.results import PlayerAccuracies
from ssr_stats.data_models.tokens import PlayerToken
from ssr_stats.database.mappers import as_utc, player_to_snapshot
from ssr_stats.database.models import Player, Score
from ssr_stats.services.base import BaseService
from ssr_stats.utils.exceptions import NotFoundError
from ssr_stats.utils.logger import setup_logger
from ssr_stats.utils.time_utils import utc_now

logger = setup_logger(__name__)


class PlayerService(BaseService):
    """Service for tracked player records."""

    async def get_player(self, player_id: str) -> PlayerSnapshot:
        """
        Get a player's current standing.

        Raises:
            NotFoundError: If the player is not tracked
        """
        async with self.get_session() as session:
            player = await session.get(Player, player_id)
            if player is None:
                raise NotFoundError("player", player_id)
            return player_to_snapshot(player)

    async def player_exists(self, player_id: str) -> bool:
        async with self.get_session() as session:
            result = await session.execute(select(Player.id).where(Player.id == player_id))
            return result.scalar_one_or_none() is not None

    async def upsert_player_from_token(self, token: PlayerToken) -> PlayerSnapshot:
        """
        Create or update a player from an upstream snapshot.

        The joined date is taken from the token's first-seen timestamp and never
        moved later. The peak rank only ever improves, and an inactive player's
        rank does not count as a peak.

        Args:
            token: Validated upstream player data

        Returns:
            The stored player snapshot
        """
        async with self.get_session() as session:
            player = await session.get(Player, token.id)
            created = player is None
            if created:
                player = Player(id=token.id, seeded_scores=False)
                session.add(player)

            player.name = token.name
            player.country = token.country
            player.rank = token.rank
            player.country_rank = token.country_rank
            player.pp = token.pp
            player.inactive = token.inactive
            player.average_ranked_accuracy = token.average_ranked_accuracy
            player.total_score = token.total_score
            player.total_ranked_score = token.total_ranked_score
            player.total_play_count = token.total_play_count
            player.ranked_play_count = token.ranked_play_count

            if token.first_seen is not None:
                joined = as_utc(player.joined_date)
                if joined is None or token.first_seen < joined:
                    player.joined_date = token.first_seen

            if self._is_new_peak(player.peak_rank, token):
                player.peak_rank = token.rank
                player.peak_rank_date = utc_now()

            await session.flush()
            snapshot = player_to_snapshot(player)

        if created:
            logger.info(f"Started tracking player {token.id} ({token.name})")
        return snapshot

    @staticmethod
    def _is_new_peak(peak_rank: Optional[int], token: PlayerToken) -> bool:
        if token.inactive or token.rank <= 0 or token.rank == HistoryConstants.INACTIVE_RANK:
            return False
        return peak_rank is None or token.rank < peak_rank

    async def mark_scores_seeded(self, player_id: str) -> None:
        """Flag that all of a player's historical scores have been fetched."""
        async with self.get_session() as session:
            result = await session.execute(
                update(Player).where(Player.id == player_id).values(seeded_scores=True)
            )
            if result.rowcount == 0:
                raise NotFoundError("player", player_id)

    async def mark_tracked(self, player_id: str) -> None:
        async with self.get_session() as session:
            await session.execute(
                update(Player).where(Player.id == player_id).values(last_tracked=utc_now())
            )

    async def get_player_average_accuracies(self, player_id: str) -> PlayerAccuracies:
        """
        Get a player's average unranked accuracy and average accuracy.

        Scores with an accuracy outside 0-100 are ignored; unranked scores are
        the ones worth no pp.

        Args:
            player_id: ID of the player

        Returns:
            PlayerAccuracies, zeros when the player has no valid scores
        """
        async with self.get_session() as session:
            result = await session.execute(
                select(Score.accuracy, Score.pp).where(Score.player_id == player_id)
            )
            rows = result.all()

        valid = [
            row for row in rows
            if row.accuracy is not None
            and math.isfinite(row.accuracy)
            and CurveConstants.MIN_ACCURACY <= row.accuracy <= CurveConstants.MAX_ACCURACY
        ]
        unranked = [row.accuracy for row in valid if not row.pp]

        return PlayerAccuracies(
            unranked_accuracy=sum(unranked) / len(unranked) if unranked else 0.0,
            average_accuracy=sum(row.accuracy for row in valid) / len(valid) if valid else 0.0
        )
