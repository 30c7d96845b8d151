"""
Score tracking service.

Ingests scores set by tracked players: stores the new score, moves the score it
replaces into previous_scores, counts it in the day's history and keeps the
player's weights and the leaderboard's ranks up to date.
"""

from typing import Optional

from sqlalchemy import select

from ssr_stats.data_models.records import LeaderboardRecord, ScoreRecord
from ssr_stats.data_models.results import TrackedScore
from ssr_stats.data_models.tokens import ScoreToken
from ssr_stats.database.mappers import score_columns, score_to_record
from ssr_stats.database.models import Player, PreviousScore, Score
from ssr_stats.services.base import BaseService
from ssr_stats.services.leaderboard import LeaderboardService
from ssr_stats.services.leaderboard_score_rank import LeaderboardScoreRankService
from ssr_stats.services.player_history import PlayerHistoryService
from ssr_stats.services.player_ranked import PlayerRankedService
from ssr_stats.utils.curve import ScoreSaberCurve
from ssr_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class ScoreTrackingService(BaseService):
    """Service for ingesting upstream scores."""

    def __init__(
        self,
        session_factory,
        leaderboard_service: Optional[LeaderboardService] = None,
        ranked_service: Optional[PlayerRankedService] = None,
        rank_service: Optional[LeaderboardScoreRankService] = None,
        history_service: Optional[PlayerHistoryService] = None
    ):
        super().__init__(session_factory)
        self.ranked_service = ranked_service or PlayerRankedService(session_factory)
        self.rank_service = rank_service or LeaderboardScoreRankService(session_factory)
        self.leaderboard_service = leaderboard_service or LeaderboardService(
            session_factory, self.ranked_service, self.rank_service
        )
        self.history_service = history_service or PlayerHistoryService(
            session_factory, ranked_service=self.ranked_service
        )

    @staticmethod
    def create_score_record(token: ScoreToken, leaderboard: LeaderboardRecord) -> ScoreRecord:
        """
        Build the stored form of an upstream score.

        Accuracy is derived from the leaderboard's max score and pp from the
        curve, so both stay consistent with the leaderboard's current state.
        """
        if leaderboard.max_score > 0:
            accuracy = token.base_score / leaderboard.max_score * 100
        else:
            logger.warning(f"Leaderboard {leaderboard.id} has no max score, storing score {token.id} with 0% accuracy")
            accuracy = 0.0

        pp = ScoreSaberCurve.get_pp(leaderboard.stars, accuracy) if leaderboard.is_pp_eligible else 0.0

        return ScoreRecord(
            id=None,
            score_id=token.id,
            player_id=token.player_id,
            leaderboard_id=leaderboard.id,
            score=token.base_score,
            modified_score=token.modified_score if token.modified_score is not None else token.base_score,
            accuracy=accuracy,
            pp=pp,
            weight=None,
            rank=token.rank or None,
            modifiers=token.modifiers,
            misses=token.misses,
            missed_notes=token.missed_notes,
            bad_cuts=token.bad_cuts,
            full_combo=token.full_combo,
            max_combo=token.max_combo,
            timestamp=token.time_set,
        )

    async def track_score(self, score_token: ScoreToken, leaderboard_id: int) -> TrackedScore:
        """
        Track a score set by a player.

        Args:
            score_token: Validated upstream score
            leaderboard_id: Leaderboard the score was set on

        Returns:
            TrackedScore; not tracked when the player is unknown or the score is a duplicate

        Raises:
            NotFoundError: If the leaderboard is not tracked
        """
        leaderboard = await self.leaderboard_service.get_leaderboard(leaderboard_id)
        player_id = score_token.player_id

        async with self.get_session() as session:
            if await session.get(Player, player_id) is None:
                logger.debug(f"Player {player_id} is not tracked, ignoring score {score_token.id}")
                return TrackedScore(score=None, tracked=False)

            duplicate = await session.execute(
                select(Score.id).where(
                    Score.score_id == score_token.id,
                    Score.leaderboard_id == leaderboard.id
                )
            )
            if duplicate.first() is not None:
                logger.debug(f"Score {score_token.id} is already tracked, ignoring...")
                return TrackedScore(score=None, tracked=False)

            result = await session.execute(
                select(Score)
                .where(Score.player_id == player_id, Score.leaderboard_id == leaderboard.id)
                .order_by(Score.timestamp.desc(), Score.id.desc())
                .limit(1)
            )
            previous_row = result.scalar_one_or_none()

            record = self.create_score_record(score_token, leaderboard)
            improved = False
            if previous_row is not None:
                previous = score_to_record(previous_row)
                improved = record.pp > previous.pp or record.accuracy > previous.accuracy

                columns = score_columns(previous)
                columns['weight'] = 0.0
                session.add(PreviousScore(**columns))
                await session.delete(previous_row)

            score = Score(**score_columns(record))
            session.add(score)
            await session.flush()
            record = score_to_record(score)

        await self.history_service.record_score_set(
            player_id,
            ranked=leaderboard.is_pp_eligible,
            improved=improved,
            history_date=score_token.time_set
        )

        if leaderboard.is_pp_eligible:
            await self.ranked_service.update_player_score_weights(player_id)
            if leaderboard.seeded_scores:
                await self.rank_service.refresh_leaderboard_scores_rank(leaderboard)

        logger.info(
            f"Tracked score {record.score_id} for player {player_id} on leaderboard {leaderboard.id} "
            f"({record.accuracy:.2f}%, {record.pp:.2f}pp{', improved' if improved else ''})"
        )
        return TrackedScore(
            score=record,
            tracked=True,
            has_previous_score=previous_row is not None,
            improved=improved
        )
