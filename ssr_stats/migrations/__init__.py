"""
Backfill migrations, runnable one by one with python -m ssr_stats.migrations.<name>.
"""

from . import (
    backfill_joined_dates,
    backfill_score_ranks,
    backfill_score_weights,
    fix_missing_modified_score,
    migrate_player_history,
    split_previous_scores,
)
from .base import BatchMigration, run_migrations

# Run order matters: scores are split before ranks and weights are backfilled
MIGRATIONS = {
    'migrate_player_history': migrate_player_history.create_migrations,
    'backfill_joined_dates': backfill_joined_dates.create_migrations,
    'fix_missing_modified_score': fix_missing_modified_score.create_migrations,
    'split_previous_scores': split_previous_scores.create_migrations,
    'backfill_score_ranks': backfill_score_ranks.create_migrations,
    'backfill_score_weights': backfill_score_weights.create_migrations,
}

__all__ = ['BatchMigration', 'MIGRATIONS', 'run_migrations']
