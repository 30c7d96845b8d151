from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Boolean, Float, BigInteger, JSON,
    ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, declared_attr
from sqlalchemy.sql import func

Base = declarative_base()

class Player(Base):
    __tablename__ = 'players'

    id = Column(String(32), primary_key=True)  # Upstream player id
    name = Column(String(100), nullable=False, default='')
    country = Column(String(8))

    # Current standing (last applied upstream snapshot)
    rank = Column(Integer, default=0)
    country_rank = Column(Integer, default=0)
    pp = Column(Float, default=0.0)
    average_ranked_accuracy = Column(Float, default=0.0)
    total_score = Column(BigInteger, default=0)
    total_ranked_score = Column(BigInteger, default=0)
    total_play_count = Column(Integer, default=0)
    ranked_play_count = Column(Integer, default=0)

    # Peak rank tracking
    peak_rank = Column(Integer, nullable=True)
    peak_rank_date = Column(DateTime(timezone=True), nullable=True)

    # Tracking state
    inactive = Column(Boolean, default=False)
    seeded_scores = Column(Boolean, default=False)  # All historical scores fetched
    joined_date = Column(DateTime(timezone=True), nullable=True)
    last_tracked = Column(DateTime(timezone=True), nullable=True)

    # Legacy per-day statistics embedded on the player, moved by migrate_player_history
    statistic_history = Column(JSON(none_as_null=True), nullable=True)

    # Metadata
    created_at = Column(DateTime(timezone=True), default=func.now())

    def __repr__(self):
        return f"<Player(id='{self.id}', name='{self.name}', rank={self.rank}, pp={self.pp})>"

class Leaderboard(Base):
    __tablename__ = 'leaderboards'

    id = Column(Integer, primary_key=True, autoincrement=False)  # Upstream leaderboard id
    song_name = Column(String(200), nullable=False, default='')
    difficulty = Column(String(50), nullable=False, default='')

    # Ranking configuration
    stars = Column(Float, default=0.0)
    max_score = Column(Integer, default=0)
    ranked = Column(Boolean, default=False)
    qualified = Column(Boolean, default=False)
    seeded_scores = Column(Boolean, default=False)  # All leaderboard scores fetched

    # Metadata
    last_refreshed = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    def __repr__(self):
        return f"<Leaderboard(id={self.id}, song='{self.song_name}', stars={self.stars}, ranked={self.ranked})>"

class ScoreColumnsMixin:
    """Columns shared by current and previous scores."""

    id = Column(Integer, primary_key=True)
    score_id = Column(String(32), nullable=False, index=True)  # Upstream score id

    @declared_attr
    def player_id(cls):
        return Column(String(32), ForeignKey('players.id'), nullable=False, index=True)

    @declared_attr
    def leaderboard_id(cls):
        return Column(Integer, ForeignKey('leaderboards.id'), nullable=False, index=True)

    score = Column(Integer, nullable=False)  # Base score
    modified_score = Column(Integer, nullable=True)  # Score after modifiers, orders the leaderboard
    accuracy = Column(Float, nullable=False, default=0.0)  # Percentage 0-100
    pp = Column(Float, nullable=False, default=0.0)
    weight = Column(Float, nullable=True)  # Written by the weighting engine only
    rank = Column(Integer, nullable=True)  # Written by the ranking engine only
    modifiers = Column(String(100), nullable=False, default='')  # Comma-separated codes
    misses = Column(Integer, default=0)
    missed_notes = Column(Integer, default=0)
    bad_cuts = Column(Integer, default=0)
    full_combo = Column(Boolean, default=False)
    max_combo = Column(Integer, default=0)
    timestamp = Column(DateTime(timezone=True), nullable=False)

class Score(ScoreColumnsMixin, Base):
    __tablename__ = 'scores'

    __table_args__ = (
        Index('ix_scores_leaderboard_modified_score', 'leaderboard_id', 'modified_score'),
        Index('ix_scores_player_pp', 'player_id', 'pp'),
        Index('ix_scores_player_leaderboard', 'player_id', 'leaderboard_id'),
    )

    def __repr__(self):
        return f"<Score(id={self.id}, player='{self.player_id}', leaderboard={self.leaderboard_id}, pp={self.pp}, rank={self.rank})>"

class PreviousScore(ScoreColumnsMixin, Base):
    """A score that was replaced by an improvement on the same leaderboard."""
    __tablename__ = 'previous_scores'

    __table_args__ = (
        Index('ix_previous_scores_player_leaderboard', 'player_id', 'leaderboard_id'),
    )

    def __repr__(self):
        return f"<PreviousScore(id={self.id}, player='{self.player_id}', leaderboard={self.leaderboard_id}, pp={self.pp})>"

class PlayerHistory(Base):
    __tablename__ = 'player_history'

    id = Column(Integer, primary_key=True)
    player_id = Column(String(32), ForeignKey('players.id'), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # UTC calendar day

    # Standing
    rank = Column(Integer, nullable=True)
    country_rank = Column(Integer, nullable=True)
    pp = Column(Float, nullable=True)
    plus_one_pp = Column(Float, nullable=True)  # Raw pp needed for +1 weighted pp

    # Accuracy
    average_ranked_accuracy = Column(Float, nullable=True)
    average_unranked_accuracy = Column(Float, nullable=True)
    average_accuracy = Column(Float, nullable=True)

    # Scores set that day
    ranked_scores = Column(Integer, nullable=False, default=0)
    unranked_scores = Column(Integer, nullable=False, default=0)
    ranked_scores_improved = Column(Integer, nullable=False, default=0)
    unranked_scores_improved = Column(Integer, nullable=False, default=0)

    # Lifetime totals
    total_scores = Column(Integer, nullable=True)
    total_ranked_scores = Column(Integer, nullable=True)
    total_score = Column(BigInteger, nullable=True)
    total_ranked_score = Column(BigInteger, nullable=True)

    # One entry per player per day
    __table_args__ = (UniqueConstraint('player_id', 'date', name='uq_player_history_player_date'),)

    def __repr__(self):
        return f"<PlayerHistory(player='{self.player_id}', date={self.date}, rank={self.rank}, pp={self.pp})>"
