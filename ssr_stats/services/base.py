"""
Session scope and retry helpers shared by the stats services.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar('T')

RETRY_BASE_DELAY = 0.1


class BaseService:
    """Base class for services working against the stats database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session committed on success and rolled back when the block raises."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(self, func: Callable[[], Awaitable[T]], max_retries: int = 3) -> T:
        """
        Await ``func()``, retrying when the database reports a transient error
        such as a locked SQLite file. The last error is re-raised.
        """
        for attempt in range(1, max_retries + 1):
            try:
                return await func()
            except OperationalError as e:
                if attempt == max_retries:
                    raise
                name = getattr(func, '__name__', repr(func))
                logger.warning(f"{name} hit a database error (attempt {attempt}/{max_retries}): {e}")
                await asyncio.sleep(RETRY_BASE_DELAY * 2 ** (attempt - 1))
