import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy import URL, make_url
from .models import Base

logger = logging.getLogger(__name__)


def async_database_url(database_url: str) -> URL:
    """Pick the async driver that matches the URL scheme."""
    parsed_url = make_url(database_url)
    if parsed_url.drivername and parsed_url.drivername.startswith('sqlite'):
        # For SQLite, use aiosqlite driver
        return URL.create(
            drivername="sqlite+aiosqlite",
            database=parsed_url.database
        )
    # For PostgreSQL, use asyncpg driver
    return URL.create(
        drivername="postgresql+asyncpg",
        username=parsed_url.username,
        password=parsed_url.password,
        host=parsed_url.host,
        port=parsed_url.port,
        database=parsed_url.database,
        query=parsed_url.query  # Preserve SSL and other query parameters
    )


class Database:
    """
    Process-lifetime persistence client.

    Constructed once by the application factory and connected/disconnected
    by the application lifespan. Handlers reach it through `get_db`.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.url = async_database_url(database_url)
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(
            self.url,
            echo=self.echo,  # Only echo SQL in debug mode
        )
        self._sessionmaker = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        logger.info(f"Connected to database driver={self.url.drivername}")

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Disconnected from database")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        async with self._sessionmaker() as session:
            yield session

    async def create_tables(self) -> None:
        """Create all tables"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)


async def get_db(request: Request):
    """Dependency to get database session"""
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()
