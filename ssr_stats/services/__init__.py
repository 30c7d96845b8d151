"""
Services package for the ScoreSaber stats core.

Ranking engine, weighting engine, history builder and score ingestion.
"""

from .base import BaseService
from .leaderboard import LeaderboardService
from .leaderboard_score_rank import LeaderboardScoreRankService
from .player import PlayerService
from .player_history import PlayerHistoryService
from .player_ranked import PlayerRankedService
from .score_tracking import ScoreTrackingService

__all__ = [
    'BaseService', 'LeaderboardService', 'LeaderboardScoreRankService', 'PlayerService',
    'PlayerHistoryService', 'PlayerRankedService', 'ScoreTrackingService'
]
