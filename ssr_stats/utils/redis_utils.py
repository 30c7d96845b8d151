"""
Redis utility module for centralized Redis configuration and connection logic.

Redis is optional: without REDIS_URL the services run without cross-process locks.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ssr_stats.config import Config
from ssr_stats.constants import LockConstants

logger = logging.getLogger(__name__)


class RedisUtils:
    """Centralized Redis configuration and connection utilities."""

    @staticmethod
    def get_secure_redis_url() -> Optional[str]:
        """Get Redis URL with security validation for production deployments."""
        redis_url = Config.REDIS_URL
        if not redis_url:
            logger.debug("REDIS_URL not set, Redis locking disabled")
            return None

        if RedisUtils._validate_redis_security(redis_url):
            return redis_url

        logger.error("REDIS_URL environment variable contains insecure configuration")
        return None

    @staticmethod
    def _validate_redis_security(redis_url: str) -> bool:
        """Validate that Redis URL meets security requirements."""
        if not redis_url:
            return False

        if Config.DEBUG:
            # Development mode - allow localhost for testing
            if redis_url.startswith('redis://localhost') or redis_url.startswith('redis://127.0.0.1'):
                return True
            if not redis_url.startswith('rediss://'):
                logger.warning(f"Potentially insecure Redis URL in development: {redis_url}")
            return True

        # Production mode - enforce strict security
        if not redis_url.startswith('rediss://'):
            logger.error("Production Redis must use rediss:// (TLS) protocol")
            return False
        if '@' not in redis_url:
            logger.error("Production Redis must include authentication credentials")
            return False
        return True

    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Create a Redis client with secure configuration."""
        redis_url = RedisUtils.get_secure_redis_url()
        if not redis_url:
            return None

        try:
            client = redis.from_url(redis_url)
            # Test connection
            await client.ping()
            logger.info("Successfully connected to Redis")
            return client
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            return None

    @staticmethod
    def rank_lock_key(leaderboard_id: int) -> str:
        """Lock name guarding the rank refresh of one leaderboard."""
        return f"{LockConstants.RANK_LOCK_PREFIX}:{leaderboard_id}"
