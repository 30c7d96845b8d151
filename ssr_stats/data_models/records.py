"""
Plain data records for scores, leaderboards, players and history entries.

Domain logic works on these immutable records only; the SQLAlchemy tables in
ssr_stats.database.models are mapped to and from them in ssr_stats.database.mappers.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class ScoreRecord:
    """A single play on a leaderboard."""
    id: Optional[int]
    score_id: str
    player_id: str
    leaderboard_id: int
    score: int
    accuracy: float
    timestamp: datetime
    modified_score: Optional[int] = None
    pp: float = 0.0
    weight: Optional[float] = None
    rank: Optional[int] = None
    modifiers: Tuple[str, ...] = ()
    misses: int = 0
    missed_notes: int = 0
    bad_cuts: int = 0
    full_combo: bool = False
    max_combo: int = 0


@dataclass(frozen=True)
class LeaderboardRecord:
    """A ranked or unranked map difficulty."""
    id: int
    stars: float = 0.0
    max_score: int = 0
    ranked: bool = False
    qualified: bool = False
    seeded_scores: bool = False
    song_name: str = ""
    difficulty: str = ""

    @property
    def is_pp_eligible(self) -> bool:
        return self.ranked and self.stars > 0


@dataclass(frozen=True)
class PlayerSnapshot:
    """Current standing of a tracked player."""
    id: str
    name: str = ""
    country: Optional[str] = None
    rank: int = 0
    country_rank: int = 0
    pp: float = 0.0
    average_ranked_accuracy: float = 0.0
    total_score: int = 0
    total_ranked_score: int = 0
    total_play_count: int = 0
    ranked_play_count: int = 0
    inactive: bool = False
    seeded_scores: bool = False
    joined_date: Optional[datetime] = None
    peak_rank: Optional[int] = None
    peak_rank_date: Optional[datetime] = None
    last_tracked: Optional[datetime] = None


@dataclass(frozen=True)
class HistoryEntry:
    """One day of a player's statistic history."""
    player_id: str
    date: date
    rank: Optional[int] = None
    country_rank: Optional[int] = None
    pp: Optional[float] = None
    plus_one_pp: Optional[float] = None
    average_ranked_accuracy: Optional[float] = None
    average_unranked_accuracy: Optional[float] = None
    average_accuracy: Optional[float] = None
    ranked_scores: int = 0
    unranked_scores: int = 0
    ranked_scores_improved: int = 0
    unranked_scores_improved: int = 0
    total_scores: Optional[int] = None
    total_ranked_scores: Optional[int] = None
    total_score: Optional[int] = None
    total_ranked_score: Optional[int] = None

    def to_dict(self) -> dict:
        """Statistic fields of the entry, without the player id and date key."""
        return {
            'rank': self.rank,
            'countryRank': self.country_rank,
            'pp': self.pp,
            'plusOnePp': self.plus_one_pp,
            'accuracy': {
                'averageRankedAccuracy': self.average_ranked_accuracy,
                'averageUnrankedAccuracy': self.average_unranked_accuracy,
                'averageAccuracy': self.average_accuracy,
            },
            'scores': {
                'rankedScores': self.ranked_scores,
                'unrankedScores': self.unranked_scores,
                'rankedScoresImproved': self.ranked_scores_improved,
                'unrankedScoresImproved': self.unranked_scores_improved,
                'totalScores': self.total_scores,
                'totalRankedScores': self.total_ranked_scores,
            },
            'score': {
                'totalScore': self.total_score,
                'totalRankedScore': self.total_ranked_score,
            },
        }


@dataclass(frozen=True)
class WeightedScore:
    """A ranked score with its position weight in the player's list."""
    id: Optional[int]
    pp: float
    weight: float

    @property
    def weighted_pp(self) -> float:
        return self.pp * self.weight


@dataclass(frozen=True)
class WeightedScoreList:
    """A player's ranked scores sorted by pp with decay weights applied."""
    scores: Tuple[WeightedScore, ...] = field(default_factory=tuple)
    total_pp: float = 0.0

    @property
    def pps(self) -> Tuple[float, ...]:
        return tuple(score.pp for score in self.scores)

    def __len__(self) -> int:
        return len(self.scores)
