"""
Result objects returned by the stats services and batch jobs.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ssr_stats.data_models.records import LeaderboardRecord, ScoreRecord


@dataclass(frozen=True)
class RankRefreshResult:
    """Outcome of recomputing the ranks of one leaderboard."""
    leaderboard_id: int
    scores_count: int
    time_taken: float


@dataclass(frozen=True)
class PlayerAccuracies:
    """Average accuracies over a player's valid scores."""
    unranked_accuracy: float = 0.0
    average_accuracy: float = 0.0


@dataclass(frozen=True)
class TrackedScore:
    """Outcome of ingesting one score."""
    score: Optional[ScoreRecord]
    tracked: bool
    has_previous_score: bool = False
    improved: bool = False


@dataclass(frozen=True)
class LeaderboardUpdate:
    """Outcome of applying an upstream leaderboard update."""
    leaderboard: LeaderboardRecord
    created: bool = False
    ranked_status_changed: bool = False
    star_count_changed: bool = False
    rescored_scores: int = 0
    affected_players: List[str] = field(default_factory=list)


@dataclass
class BatchRunResult:
    """Counters of a batch job over many players or leaderboards."""
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: List[str] = field(default_factory=list)

    def record_failure(self, record_id) -> None:
        self.failed += 1
        self.failed_ids.append(str(record_id))


@dataclass
class MigrationResult(BatchRunResult):
    """Counters of a backfill migration run."""
    name: str = ""
    batches: int = 0
