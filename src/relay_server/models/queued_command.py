"""Queued command row for the SQL queue backend."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from relay_server.utils.db import Base


class QueuedCommand(Base):
    """Pending command awaiting a device poll. Deleted when drained."""

    __tablename__ = "queued_commands"

    # Autoincrement id doubles as the FIFO sequence number.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identity: Mapped[str] = mapped_column(String(255), index=True)
    payload: Mapped[str] = mapped_column(Text)  # JSON command dict
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
