"""Data access for QueuedCommand rows."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relay_server.models.queued_command import QueuedCommand

_active_session: ContextVar[AsyncSession] = ContextVar("queued_command_session")


class CommandDAO:
    """Data access for queued commands.

    Use transaction() to wrap a group of operations in one unit of work.
    """

    def __init__(self, pool: async_sessionmaker[AsyncSession]) -> None:
        self._pool = pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Open a unit of work. DAO calls inside share one session until it exits."""
        async with self._pool() as session:
            token = _active_session.set(session)
            try:
                yield
            finally:
                _active_session.reset(token)

    def _session(self) -> AsyncSession:
        return _active_session.get()

    async def create_command(self, *, identity: str, payload: str) -> QueuedCommand:
        """Insert a queued command for a device."""
        command = QueuedCommand(identity=identity, payload=payload)
        self._session().add(command)
        await self._session().flush()
        return command

    async def list_for_identity(self, identity: str) -> list[QueuedCommand]:
        """Return all queued commands for a device, oldest first."""
        result = await self._session().execute(
            select(QueuedCommand)
            .where(QueuedCommand.identity == identity)
            .order_by(QueuedCommand.id),
        )
        return list(result.scalars().all())

    async def delete_by_ids(self, command_ids: list[int]) -> None:
        """Delete exactly the given rows."""
        await self._session().execute(
            delete(QueuedCommand).where(QueuedCommand.id.in_(command_ids)),
        )

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._session().commit()
