"""
Backfill missing player joined dates.

A player without a joined date gets the timestamp of their earliest known
score, current or previous. Players without any scores are left for the next
upstream player update.
"""

from sqlalchemy import func, select, update

from ssr_stats.database.mappers import as_utc
from ssr_stats.database.models import Player, PreviousScore, Score
from ssr_stats.migrations.base import BatchMigration, run_standalone


class BackfillJoinedDates(BatchMigration):
    name = "backfill_joined_dates"
    description = "set missing joined dates from the earliest score"

    @property
    def key_column(self):
        return Player.id

    def pending_query(self):
        return select(Player.id).where(Player.joined_date.is_(None))

    async def migrate_record(self, session, record) -> bool:
        player_id = record.id
        earliest = []
        for model in (Score, PreviousScore):
            result = await session.execute(
                select(func.min(model.timestamp)).where(model.player_id == player_id)
            )
            timestamp = result.scalar_one_or_none()
            if timestamp is not None:
                earliest.append(as_utc(timestamp))

        if not earliest:
            return False

        await session.execute(
            update(Player).where(Player.id == player_id).values(joined_date=min(earliest))
        )
        return True


def create_migrations(database, batch_size=None):
    return [BackfillJoinedDates(database, batch_size)]


if __name__ == "__main__":
    run_standalone(create_migrations)
