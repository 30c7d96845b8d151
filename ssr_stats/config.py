import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Stats core configuration settings"""

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite+aiosqlite:///ssr_stats.db')

    # Redis settings (optional, enables cross-process rank refresh locking)
    REDIS_URL = os.getenv('REDIS_URL', '')

    # Runtime settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Batch job settings
    HISTORY_BATCH_SIZE = int(os.getenv('HISTORY_BATCH_SIZE', 50))
    MIGRATION_BATCH_SIZE = int(os.getenv('MIGRATION_BATCH_SIZE', 500))

    # PP boundary steps stored on each history entry request
    PP_BOUNDARY_COUNT = int(os.getenv('PP_BOUNDARY_COUNT', 1))

    # Seconds a leaderboard rank refresh may hold its Redis lock
    RANK_LOCK_TIMEOUT_SECONDS = int(os.getenv('RANK_LOCK_TIMEOUT_SECONDS', 30))

    @classmethod
    def get_database_url(cls) -> str:
        """Get the async database URL, converting plain sqlite URLs to aiosqlite"""
        database_url = cls.DATABASE_URL
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
        return database_url

    @classmethod
    def validate(cls):
        """Validate that the configuration values are usable"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        if cls.HISTORY_BATCH_SIZE <= 0:
            raise ValueError("HISTORY_BATCH_SIZE must be a positive integer")
        if cls.MIGRATION_BATCH_SIZE <= 0:
            raise ValueError("MIGRATION_BATCH_SIZE must be a positive integer")
        if cls.PP_BOUNDARY_COUNT <= 0:
            raise ValueError("PP_BOUNDARY_COUNT must be a positive integer")
        if cls.RANK_LOCK_TIMEOUT_SECONDS <= 0:
            raise ValueError("RANK_LOCK_TIMEOUT_SECONDS must be a positive integer")
