"""
Backfill missing score ranks.

Ranked, seeded leaderboards with scores that have no rank yet are refreshed
through the leaderboard ranking engine.
"""

from sqlalchemy import exists, select

from ssr_stats.database.models import Leaderboard, Score
from ssr_stats.migrations.base import BatchMigration, run_standalone
from ssr_stats.services.leaderboard_score_rank import LeaderboardScoreRankService


class BackfillScoreRanks(BatchMigration):
    name = "backfill_score_ranks"
    description = "refresh ranks of leaderboards with unranked scores"

    def __init__(self, database, batch_size=None, rank_service=None):
        super().__init__(database, batch_size)
        self.rank_service = rank_service or LeaderboardScoreRankService(database.session_factory)

    @property
    def key_column(self):
        return Leaderboard.id

    def pending_query(self):
        missing_rank = exists().where(Score.leaderboard_id == Leaderboard.id, Score.rank.is_(None))
        return select(Leaderboard.id).where(
            Leaderboard.ranked == True,
            Leaderboard.seeded_scores == True,
            missing_rank
        )

    async def migrate_record(self, session, record) -> bool:
        result = await self.rank_service.refresh_leaderboard_scores_rank(record.id)
        return result.scores_count > 0


def create_migrations(database, batch_size=None):
    return [BackfillScoreRanks(database, batch_size)]


if __name__ == "__main__":
    run_standalone(create_migrations)
