"""
Move superseded scores into previous_scores.

Older databases kept every submission in the scores table. For each player and
leaderboard only the newest score stays current; the older ones move to
previous_scores with a weight of 0.
"""

from sqlalchemy import func, select

from ssr_stats.database.mappers import score_columns, score_to_record
from ssr_stats.database.models import PreviousScore, Score
from ssr_stats.migrations.base import BatchMigration, run_standalone
from ssr_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class SplitPreviousScores(BatchMigration):
    name = "split_previous_scores"
    description = "keep the newest score per player and leaderboard"

    @property
    def key_column(self):
        return Score.player_id

    def pending_query(self):
        return (
            select(Score.player_id)
            .group_by(Score.player_id, Score.leaderboard_id)
            .having(func.count(Score.id) > 1)
            .distinct()
        )

    async def migrate_record(self, session, record) -> bool:
        player_id = record.player_id
        result = await session.execute(
            select(Score)
            .where(Score.player_id == player_id)
            .order_by(Score.leaderboard_id, Score.timestamp.desc(), Score.id.desc())
        )

        moved = 0
        current_leaderboard = None
        for score in result.scalars():
            if score.leaderboard_id != current_leaderboard:
                # Newest score of the leaderboard stays current
                current_leaderboard = score.leaderboard_id
                continue

            columns = score_columns(score_to_record(score))
            columns['weight'] = 0.0
            session.add(PreviousScore(**columns))
            await session.delete(score)
            moved += 1

        logger.debug(f"Moved {moved} superseded scores of player {player_id} to previous scores")
        return moved > 0


def create_migrations(database, batch_size=None):
    return [SplitPreviousScores(database, batch_size)]


if __name__ == "__main__":
    run_standalone(create_migrations)
