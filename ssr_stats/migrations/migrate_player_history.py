"""
Move legacy statistic history into the player_history table.

Legacy databases kept each player's history as one JSON object keyed by day:

    {"2024-01-31": {"rank": 120, "pp": 9000.5, "scores": {"rankedScores": 3}, ...}}

Every day becomes a player_history row. Only finite numbers are kept; days
that already have a row are left untouched. The legacy column is cleared once
a player is migrated so a re-run skips them.
"""

import math
from typing import Any, Dict, List, Mapping

from sqlalchemy import null, select, update

from ssr_stats.database.models import Player
from ssr_stats.migrations.base import BatchMigration, run_standalone
from ssr_stats.services.player_history import history_insert
from ssr_stats.utils.logger import setup_logger
from ssr_stats.utils.time_utils import parse_date_key

logger = setup_logger(__name__)

# Legacy JSON path -> player_history column
LEGACY_FIELD_PATHS = {
    ('rank',): 'rank',
    ('countryRank',): 'country_rank',
    ('pp',): 'pp',
    ('plusOnePp',): 'plus_one_pp',
    ('accuracy', 'averageRankedAccuracy'): 'average_ranked_accuracy',
    ('accuracy', 'averageUnrankedAccuracy'): 'average_unranked_accuracy',
    ('accuracy', 'averageAccuracy'): 'average_accuracy',
    ('scores', 'rankedScores'): 'ranked_scores',
    ('scores', 'unrankedScores'): 'unranked_scores',
    ('scores', 'rankedScoresImproved'): 'ranked_scores_improved',
    ('scores', 'unrankedScoresImproved'): 'unranked_scores_improved',
    ('scores', 'totalScores'): 'total_scores',
    ('scores', 'totalRankedScores'): 'total_ranked_scores',
    ('score', 'totalScore'): 'total_score',
    ('score', 'totalRankedScore'): 'total_ranked_score',
}

FLOAT_COLUMNS = frozenset({
    'pp', 'plus_one_pp', 'average_ranked_accuracy', 'average_unranked_accuracy', 'average_accuracy',
})


def _lookup(data: Mapping[str, Any], path) -> Any:
    value = data
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_legacy_history(player_id: str, raw: Any) -> List[Dict[str, Any]]:
    """
    Convert a legacy statistic history object into player_history rows.

    Days with an invalid key or without any usable value are dropped.
    """
    if not isinstance(raw, Mapping):
        return []

    rows = []
    for date_key, day in raw.items():
        try:
            history_date = parse_date_key(date_key)
        except (TypeError, ValueError):
            logger.warning(f"Player {player_id}: ignoring legacy history day with invalid key {date_key!r}")
            continue
        if not isinstance(day, Mapping):
            continue

        values = {}
        for path, column in LEGACY_FIELD_PATHS.items():
            value = _lookup(day, path)
            if not _is_finite_number(value):
                continue
            values[column] = float(value) if column in FLOAT_COLUMNS else int(value)

        if values:
            rows.append({'player_id': player_id, 'date': history_date, **values})
    return rows


class MigratePlayerHistory(BatchMigration):
    name = "migrate_player_history"
    description = "move legacy statistic history into player_history"

    @property
    def key_column(self):
        return Player.id

    def pending_query(self):
        return select(Player.id, Player.statistic_history).where(Player.statistic_history.is_not(None))

    async def migrate_record(self, session, record) -> bool:
        rows = parse_legacy_history(record.id, record.statistic_history)
        for row in rows:
            stmt = history_insert(session).values(**row)
            await session.execute(stmt.on_conflict_do_nothing(index_elements=['player_id', 'date']))

        await session.execute(
            update(Player).where(Player.id == record.id).values(statistic_history=null())
        )
        logger.debug(f"Migrated {len(rows)} legacy history days of player {record.id}")
        return bool(rows)


def create_migrations(database, batch_size=None):
    return [MigratePlayerHistory(database, batch_size)]


if __name__ == "__main__":
    run_standalone(create_migrations)
