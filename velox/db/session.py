import logging
import os
from typing import Any, Dict
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from velox.models.base import Base
from velox.models import subscribers  # noqa: F401  registers the table on Base.metadata

logger = logging.getLogger(__name__)

def async_database_url(url: str) -> str:
    """Rewrites sync driver URLs to their async drivers (asyncpg / aiosqlite)."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url

class Database:
    """
    Store handle: one engine and its session factory.
    Constructed explicitly at startup and disposed at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = async_database_url(url)

        connect_args: Dict[str, Any] = {}
        if self.url.startswith("postgresql+asyncpg://"):
            connect_args["statement_cache_size"] = 0

        self.engine = create_async_engine(
            self.url,
            echo=echo,
            connect_args=connect_args
        )
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    async def create_all(self):
        """Creates tables and indexes declared on the models (idempotent)."""
        self._ensure_sqlite_dir()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready.")

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database connection closed.")

    def _ensure_sqlite_dir(self):
        url = make_url(self.url)
        if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
            return
        directory = os.path.dirname(url.database)
        if directory:
            os.makedirs(directory, exist_ok=True)
