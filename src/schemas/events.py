"""SystemEvent schema — what the event store announces on the internal bus.

Every write to the event store emits a SystemEvent. Subscribers (the remote
forwarder, for now) consume these asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted on the bus."""

    # Event store
    EVENT_LOGGED = "store.event_logged"
    EVENT_UPDATED = "store.event_updated"
    LOG_RESET = "store.log_reset"
    LOG_PURGED = "store.log_purged"

    # Hooks
    HOOK_REJECTED = "hooks.rejected"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """Internal notification. Immutable once created.

    Not to be confused with the audit rows themselves (src.models.event.Event):
    a SystemEvent carries a snapshot of the row so subscribers never touch the
    database session that wrote it.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    actor_id: int | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
