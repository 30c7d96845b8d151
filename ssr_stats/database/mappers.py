"""
Mapping between SQLAlchemy rows and the plain data records.

Services convert rows right after loading them so domain code never touches
ORM objects.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple

from ssr_stats.data_models.records import HistoryEntry, LeaderboardRecord, PlayerSnapshot, ScoreRecord
from ssr_stats.database.models import Leaderboard, Player, PlayerHistory, ScoreColumnsMixin

# Statistic columns of player_history, in record field order
HISTORY_FIELDS: Tuple[str, ...] = (
    'rank', 'country_rank', 'pp', 'plus_one_pp',
    'average_ranked_accuracy', 'average_unranked_accuracy', 'average_accuracy',
    'ranked_scores', 'unranked_scores', 'ranked_scores_improved', 'unranked_scores_improved',
    'total_scores', 'total_ranked_scores', 'total_score', 'total_ranked_score',
)

# Per-day score counters maintained by record_score_set
HISTORY_COUNTERS: Tuple[str, ...] = (
    'ranked_scores', 'unranked_scores', 'ranked_scores_improved', 'unranked_scores_improved',
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite returns naive datetimes; every stored timestamp is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def split_modifiers(value: Optional[str]) -> Tuple[str, ...]:
    return tuple(code for code in (value or '').split(',') if code)


def join_modifiers(modifiers) -> str:
    return ','.join(modifiers)


def score_to_record(row: ScoreColumnsMixin) -> ScoreRecord:
    return ScoreRecord(
        id=row.id,
        score_id=row.score_id,
        player_id=row.player_id,
        leaderboard_id=row.leaderboard_id,
        score=row.score,
        modified_score=row.modified_score,
        accuracy=row.accuracy,
        pp=row.pp or 0.0,
        weight=row.weight,
        rank=row.rank,
        modifiers=split_modifiers(row.modifiers),
        misses=row.misses or 0,
        missed_notes=row.missed_notes or 0,
        bad_cuts=row.bad_cuts or 0,
        full_combo=bool(row.full_combo),
        max_combo=row.max_combo or 0,
        timestamp=as_utc(row.timestamp),
    )


def score_columns(record: ScoreRecord) -> dict:
    """Column values of a score record, without the primary key."""
    return {
        'score_id': record.score_id,
        'player_id': record.player_id,
        'leaderboard_id': record.leaderboard_id,
        'score': record.score,
        'modified_score': record.modified_score,
        'accuracy': record.accuracy,
        'pp': record.pp,
        'weight': record.weight,
        'rank': record.rank,
        'modifiers': join_modifiers(record.modifiers),
        'misses': record.misses,
        'missed_notes': record.missed_notes,
        'bad_cuts': record.bad_cuts,
        'full_combo': record.full_combo,
        'max_combo': record.max_combo,
        'timestamp': record.timestamp,
    }


def leaderboard_to_record(row: Leaderboard) -> LeaderboardRecord:
    return LeaderboardRecord(
        id=row.id,
        song_name=row.song_name or '',
        difficulty=row.difficulty or '',
        stars=row.stars or 0.0,
        max_score=row.max_score or 0,
        ranked=bool(row.ranked),
        qualified=bool(row.qualified),
        seeded_scores=bool(row.seeded_scores),
    )


def player_to_snapshot(row: Player) -> PlayerSnapshot:
    return PlayerSnapshot(
        id=row.id,
        name=row.name or '',
        country=row.country,
        rank=row.rank or 0,
        country_rank=row.country_rank or 0,
        pp=row.pp or 0.0,
        average_ranked_accuracy=row.average_ranked_accuracy or 0.0,
        total_score=row.total_score or 0,
        total_ranked_score=row.total_ranked_score or 0,
        total_play_count=row.total_play_count or 0,
        ranked_play_count=row.ranked_play_count or 0,
        inactive=bool(row.inactive),
        seeded_scores=bool(row.seeded_scores),
        joined_date=as_utc(row.joined_date),
        peak_rank=row.peak_rank,
        peak_rank_date=as_utc(row.peak_rank_date),
        last_tracked=as_utc(row.last_tracked),
    )


def history_to_entry(row: PlayerHistory) -> HistoryEntry:
    values = {name: getattr(row, name) for name in HISTORY_FIELDS}
    for counter in HISTORY_COUNTERS:
        values[counter] = values[counter] or 0
    return HistoryEntry(player_id=row.player_id, date=row.date, **values)


def history_columns(entry: HistoryEntry) -> dict:
    """Statistic column values of a history entry."""
    return {name: getattr(entry, name) for name in HISTORY_FIELDS}
