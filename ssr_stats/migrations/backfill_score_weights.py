"""
Backfill missing score weights.

Seeded players with ranked scores that have no weight yet are re-weighted
through the player weighting engine.
"""

from sqlalchemy import exists, select

from ssr_stats.database.models import Player, Score
from ssr_stats.migrations.base import BatchMigration, run_standalone
from ssr_stats.services.player_ranked import PlayerRankedService


class BackfillScoreWeights(BatchMigration):
    name = "backfill_score_weights"
    description = "re-weight players with unweighted ranked scores"

    def __init__(self, database, batch_size=None, ranked_service=None):
        super().__init__(database, batch_size)
        self.ranked_service = ranked_service or PlayerRankedService(database.session_factory)

    @property
    def key_column(self):
        return Player.id

    def pending_query(self):
        missing_weight = exists().where(
            Score.player_id == Player.id,
            Score.pp > 0,
            Score.weight.is_(None)
        )
        return select(Player.id).where(Player.seeded_scores == True, missing_weight)

    async def migrate_record(self, session, record) -> bool:
        weighted = await self.ranked_service.update_player_score_weights(record.id)
        return weighted is not None


def create_migrations(database, batch_size=None):
    return [BackfillScoreWeights(database, batch_size)]


if __name__ == "__main__":
    run_standalone(create_migrations)
