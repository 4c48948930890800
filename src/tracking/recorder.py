"""Common write path for all tracking handlers."""

from __future__ import annotations

import logging
from typing import Any

from markupsafe import escape
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import ObjectType
from src.schemas.hooks import Actor
from src.store.events import NewEvent, append_event
from src.tracking.context import RequestContext

logger = logging.getLogger(__name__)

_UNSET: Any = object()


async def log_event(
    db: AsyncSession,
    ctx: RequestContext,
    event_type: str,
    object_type: ObjectType | str,
    object_id: int | str | None,
    object_label: str | None = None,
    details: dict[str, Any] | None = None,
    actor: Actor | None = _UNSET,
) -> int | None:
    """Store one event attributed to the request's actor (or `actor`).

    Detail values that are not Markup are HTML-escaped here, so the admin
    screens can render stored details as they are.

    Returns the new id, or None when the tracking settings exclude the actor.
    Raises InvalidEventError from the store unchanged.
    """
    if actor is _UNSET:
        actor = ctx.actor
    if not ctx.should_track(actor):
        logger.debug("Skipping %s: actor not tracked", event_type)
        return None

    return await append_event(db, NewEvent(
        event_type=event_type,
        object_type=object_type,
        object_id=object_id,
        object_label=object_label,
        details={k: "" if v is None else str(escape(v)) for k, v in (details or {}).items()},
        user_id=actor.id if actor else None,
        user_role=actor.role_label if actor else "",
        source_ip=ctx.source_ip,
    ))
