"""Async engine and session factory for the SQL queue backend."""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

IN_MEMORY_URL = "sqlite+aiosqlite://"


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class Database:
    """One engine plus its session factory, owned by whoever built it.

    The in-memory SQLite URL gets a single shared connection so every
    session sees the same tables.
    """

    def __init__(self, database_url: str) -> None:
        kwargs: dict[str, Any] = {"echo": False}
        if database_url == IN_MEMORY_URL:
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        self._engine: AsyncEngine = create_async_engine(database_url, **kwargs)
        self.pool: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        """Create all tables from registered models (idempotent)."""
        import relay_server.models.queued_command

        _ = relay_server.models.queued_command  # Register table metadata with Base
        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info(f"Database ready: {self._engine.url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        """Dispose the engine and release pooled connections."""
        await self._engine.dispose()
