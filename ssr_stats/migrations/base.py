"""
Base class for the backfill migrations.

A migration walks the records its pending query selects in keyset-paginated
batches. Each batch is read in a short read-only session, then every record is
migrated in its own transaction so one bad record never rolls back the others.
Records that were already migrated must not match the pending query, which
makes every migration safe to re-run.
"""

import asyncio
import time
from typing import Callable, List, Optional

from sqlalchemy import Select

from ssr_stats.config import Config
from ssr_stats.data_models.results import MigrationResult
from ssr_stats.database.database import Database
from ssr_stats.utils.logger import setup_logger
from ssr_stats.utils.time_utils import format_duration

logger = setup_logger(__name__)


class BatchMigration:
    """Keyset-paginated, per-record transactional data migration."""

    name = "batch_migration"
    description = ""

    def __init__(self, database: Database, batch_size: Optional[int] = None):
        self.database = database
        self.batch_size = batch_size or Config.MIGRATION_BATCH_SIZE

    @property
    def key_column(self):
        """Unique, ordered column the batches are paginated on."""
        raise NotImplementedError

    def pending_query(self) -> Select:
        """Query selecting the records still to migrate, key column first."""
        raise NotImplementedError

    async def migrate_record(self, session, record) -> bool:
        """
        Migrate one record inside its own transaction.

        Returns:
            True if the record was migrated, False if it was skipped
        """
        raise NotImplementedError

    async def _next_batch(self, last_key) -> list:
        query = self.pending_query().order_by(self.key_column).limit(self.batch_size)
        if last_key is not None:
            query = query.where(self.key_column > last_key)
        async with self.database.get_session() as session:
            result = await session.execute(query)
            return result.all()

    async def run(self) -> MigrationResult:
        """Run the migration over every pending record."""
        result = MigrationResult(name=self.name)
        start_time = time.monotonic()
        last_key = None

        logger.info(f"🚀 Starting migration {self.name}: {self.description}")
        while True:
            records = await self._next_batch(last_key)
            if not records:
                break
            last_key = records[-1][0]
            result.batches += 1

            for record in records:
                record_key = record[0]
                result.processed += 1
                try:
                    async with self.database.transaction() as session:
                        migrated = await self.migrate_record(session, record)
                except Exception as e:
                    logger.error(f"❌ {self.name}: failed to migrate {record_key}: {e}", exc_info=True)
                    result.record_failure(record_key)
                    continue

                if migrated:
                    result.succeeded += 1
                else:
                    result.skipped += 1

            logger.info(
                f"Progress: batch {result.batches}, {result.processed} records processed "
                f"({result.succeeded} migrated, {result.skipped} skipped, {result.failed} failed)"
            )

        logger.info(
            f"✅ Migration {self.name} finished in {format_duration(time.monotonic() - start_time)}: "
            f"{result.succeeded} migrated, {result.skipped} skipped, {result.failed} failed"
        )
        return result


async def run_migrations(migrations: List[BatchMigration]) -> List[MigrationResult]:
    """Run migrations one after another."""
    return [await migration.run() for migration in migrations]


async def main(create_migrations: Callable[..., List[BatchMigration]]):
    """Run a migration module against the configured database."""
    db = Database()
    await db.initialize()

    try:
        results = await run_migrations(create_migrations(db))
    finally:
        await db.close()

    for result in results:
        if result.failed:
            logger.warning(f"⚠️ {result.name}: {result.failed} records failed: {', '.join(result.failed_ids)}")
    return results


def run_standalone(create_migrations: Callable[..., List[BatchMigration]]):
    asyncio.run(main(create_migrations))
