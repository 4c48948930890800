"""Event model — one row per logged CMS lifecycle transition.

Append-only, with one exception: "User Session" rows have their details
rewritten while the session continues (see src/tracking/users.py).
No foreign keys — the trail outlives the users and posts it describes.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, utc_now


class Event(Base):
    """A single audit log entry."""

    __tablename__ = "logify_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date_time: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False, comment="UTC, second precision"
    )

    # Actor; null for system and anonymous events
    user_id: Mapped[int | None] = mapped_column(Integer)
    user_role: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    source_ip: Mapped[str | None] = mapped_column(String(45))

    # Classification
    event_type: Mapped[str] = mapped_column(String(255), nullable=False)

    # Subject
    object_type: Mapped[str] = mapped_column(String(20), nullable=False)
    object_id: Mapped[str] = mapped_column(String(255), nullable=False)
    object_label: Mapped[str | None] = mapped_column(String(255))

    # JSON text, key order is display order
    details: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_logify_events_date_time", "date_time"),
        Index("idx_logify_events_user_type", "user_id", "event_type"),
        Index("idx_logify_events_object", "object_type", "object_id"),
    )

    @property
    def details_map(self) -> dict[str, Any]:
        """Decoded details, preserving insertion order."""
        if not self.details:
            return {}
        return json.loads(self.details)

    def __repr__(self) -> str:
        return f"<Event id={self.id} type={self.event_type} object={self.object_type}:{self.object_id}>"
