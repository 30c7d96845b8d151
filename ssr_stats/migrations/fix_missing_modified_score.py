"""
Fill in missing modified scores.

Scores stored before modified scores were tracked get one derived from the
base score: No-Fail plays halve the score, so the base score is divided by
the No-Fail multiplier; every other play keeps its base score.
"""

from sqlalchemy import select, update

from ssr_stats.constants import ScoreConstants
from ssr_stats.database.mappers import split_modifiers
from ssr_stats.database.models import PreviousScore, Score
from ssr_stats.migrations.base import BatchMigration, run_standalone


def derive_modified_score(score: int, modifiers) -> int:
    if "NF" in modifiers:
        return round(score / ScoreConstants.NO_FAIL_MULTIPLIER)
    return score


class FixMissingModifiedScore(BatchMigration):
    description = "derive missing modified scores from the base score"

    def __init__(self, database, model=Score, batch_size=None):
        super().__init__(database, batch_size)
        self.model = model
        self.name = f"fix_missing_modified_score ({model.__tablename__})"

    @property
    def key_column(self):
        return self.model.id

    def pending_query(self):
        return select(self.model.id, self.model.score, self.model.modifiers).where(
            self.model.modified_score.is_(None)
        )

    async def migrate_record(self, session, record) -> bool:
        modified_score = derive_modified_score(record.score, split_modifiers(record.modifiers))
        await session.execute(
            update(self.model).where(self.model.id == record.id).values(modified_score=modified_score)
        )
        return True


def create_migrations(database, batch_size=None):
    return [
        FixMissingModifiedScore(database, Score, batch_size),
        FixMissingModifiedScore(database, PreviousScore, batch_size),
    ]


if __name__ == "__main__":
    run_standalone(create_migrations)
