"""Event store — the only code that writes to or filters logify_events.

Appends are validated; reads are whitelisted. Every mutation is announced on
the event bus after the session has flushed it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from src.admin.events import emit
from src.models.base import utc_now
from src.models.enums import ObjectType, SortColumn, SortDirection
from src.models.event import Event
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class InvalidEventError(ValueError):
    """An event failed validation and was not stored."""


@dataclass
class NewEvent:
    """A normalized record as built by a tracking handler, before storage."""

    event_type: str
    object_type: ObjectType | str
    object_id: int | str | None
    object_label: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    user_id: int | None = None
    user_role: str = ""
    source_ip: str | None = None


@dataclass
class QueryPage:
    """One page of query results plus the counts the grid needs."""

    events: list[Event]
    filtered: int
    total: int


def _validate(record: NewEvent) -> ObjectType:
    try:
        object_type = ObjectType(record.object_type)
    except ValueError:
        msg = f"Invalid object type: {record.object_type}"
        raise InvalidEventError(msg) from None
    if record.object_id is None:
        raise InvalidEventError("Object ID or name cannot be null.")
    return object_type


def _snapshot(event: Event) -> dict[str, Any]:
    return {
        "id": event.id,
        "date_time": event.date_time.isoformat(),
        "user_id": event.user_id,
        "user_role": event.user_role,
        "source_ip": event.source_ip,
        "event_type": event.event_type,
        "object_type": event.object_type,
        "object_id": event.object_id,
        "object_label": event.object_label,
        "details": event.details_map,
    }


# ── Writes ───────────────────────────────────────────────────────────


async def append_event(db: AsyncSession, record: NewEvent) -> int:
    """Validate and insert one event. Returns the assigned id.

    Raises InvalidEventError before touching the session if the object type
    is outside the fixed set or the object id is missing.
    """
    object_type = _validate(record)

    event = Event(
        date_time=utc_now(),
        user_id=record.user_id,
        user_role=record.user_role or "",
        source_ip=record.source_ip,
        event_type=record.event_type,
        object_type=object_type.value,
        object_id=str(record.object_id),
        object_label=record.object_label,
        details=json.dumps(record.details, ensure_ascii=False) if record.details else None,
    )
    db.add(event)
    await db.flush()

    logger.info("Logged %s for %s:%s (event=%d)", event.event_type, event.object_type, event.object_id, event.id)
    await emit(SystemEvent(
        event_type=EventType.EVENT_LOGGED,
        actor_id=event.user_id,
        data=_snapshot(event),
        source_module="store.events",
    ))
    return event.id


async def update_details(db: AsyncSession, event_id: int, details: dict[str, Any]) -> None:
    """Rewrite the details of an existing event (session continuation only)."""
    event = await db.get(Event, event_id)
    if event is None:
        logger.warning("Cannot update details of missing event %d", event_id)
        return
    event.details = json.dumps(details, ensure_ascii=False)
    await db.flush()
    await emit(SystemEvent(
        event_type=EventType.EVENT_UPDATED,
        data={"id": event_id, "details": details},
        source_module="store.events",
    ))


async def truncate(db: AsyncSession) -> int:
    """Delete every event. Irreversible; confirmation belongs to the caller."""
    result = await db.execute(delete(Event))
    count = result.rowcount  # type: ignore[attr-defined]
    logger.warning("Event log reset: %d events deleted", count)
    await emit(SystemEvent(
        event_type=EventType.LOG_RESET,
        data={"deleted": count},
        source_module="store.events",
    ))
    return count


async def purge_before(db: AsyncSession, cutoff: datetime) -> int:
    """Delete events logged before `cutoff` (naive UTC)."""
    result = await db.execute(delete(Event).where(Event.date_time < cutoff))
    count = result.rowcount  # type: ignore[attr-defined]
    if count > 0:
        logger.info("Purged %d events older than %s", count, cutoff.isoformat())
        await emit(SystemEvent(
            event_type=EventType.LOG_PURGED,
            data={"deleted": count, "cutoff": cutoff.isoformat()},
            source_module="store.events",
        ))
    return count


# ── Reads ────────────────────────────────────────────────────────────


async def latest_event(db: AsyncSession, user_id: int, event_type: str) -> Event | None:
    """Most recent event of `event_type` triggered by `user_id`."""
    result = await db.execute(
        select(Event)
        .where(Event.user_id == user_id, Event.event_type == event_type)
        .order_by(Event.date_time.desc(), Event.id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def count_since(db: AsyncSession, since: datetime) -> int:
    result = await db.execute(select(func.count(Event.id)).where(Event.date_time > since))
    return result.scalar() or 0


async def recent_events(db: AsyncSession, limit: int = 10) -> list[Event]:
    result = await db.execute(
        select(Event).order_by(Event.date_time.desc(), Event.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(search_text: str) -> ColumnElement[bool]:
    """Case-insensitive substring match OR'd across the searchable columns."""
    pattern = f"%{_escape_like(search_text)}%"
    columns = [
        cast(Event.date_time, String),
        Event.user_role,
        Event.source_ip,
        Event.event_type,
        Event.object_type,
        Event.details,
    ]
    return or_(*[column.ilike(pattern, escape="\\") for column in columns])


def _order_by(sort_column: str | None, sort_direction: str | None) -> list[Any]:
    """ORDER BY terms. Unknown columns fall back to date_time; bad directions to desc."""
    try:
        column = SortColumn(sort_column)
    except ValueError:
        column = SortColumn.DATE_TIME
    try:
        direction = SortDirection((sort_direction or "").lower())
    except ValueError:
        direction = SortDirection.DESC

    match column:
        case SortColumn.ID:
            terms = [Event.id]
        case SortColumn.DATE_TIME:
            terms = [Event.date_time]
        case SortColumn.USER:
            terms = [Event.user_id]
        case SortColumn.SOURCE_IP:
            terms = [Event.source_ip]
        case SortColumn.EVENT_TYPE:
            terms = [Event.event_type]
        case SortColumn.OBJECT:
            terms = [Event.object_type, Event.object_id]

    # id breaks ties between events logged in the same second
    if column is not SortColumn.ID:
        terms.append(Event.id)

    if direction is SortDirection.ASC:
        return [t.asc() for t in terms]
    return [t.desc() for t in terms]


async def query_events(
    db: AsyncSession,
    search_text: str | None = None,
    sort_column: str | None = None,
    sort_direction: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> QueryPage:
    """Filter, sort and page the event log for the grid widget."""
    if limit is None or limit < 1:
        limit = DEFAULT_PAGE_SIZE
    if offset is None or offset < 0:
        offset = 0

    query = select(Event)
    count_query = select(func.count(Event.id))

    result = await db.execute(count_query)
    total = result.scalar() or 0

    if search_text:
        clause = _search_clause(search_text)
        query = query.where(clause)
        result = await db.execute(count_query.where(clause))
        filtered = result.scalar() or 0
    else:
        filtered = total

    result = await db.execute(
        query.order_by(*_order_by(sort_column, sort_direction)).offset(offset).limit(limit)
    )
    return QueryPage(events=list(result.scalars().all()), filtered=filtered, total=total)
