"""Remote collector forwarding — sends a copy of each logged event.

Subscribed to EVENT_LOGGED on the event bus at startup when FORWARD_URL is
set. Events are only sent while the api_key option is filled in; the key is
passed as a Bearer token.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.admin.options import load_options
from src.config import settings
from src.db.engine import async_session_factory
from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


def build_payload(event: SystemEvent) -> dict[str, Any]:
    """Collector body: the stored row plus the bus event id."""
    row = event.data
    return {
        "event": row.get("event_type"),
        "object_type": row.get("object_type"),
        "object_id": row.get("object_id"),
        "object": row.get("object_label"),
        "user_id": row.get("user_id"),
        "user_role": row.get("user_role"),
        "source_ip": row.get("source_ip"),
        "date_time": row.get("date_time"),
        "details": row.get("details") or {},
        "event_id": row.get("id"),
        "notification_id": str(event.id),
    }


async def send_event(url: str, api_key: str, payload: dict[str, Any]) -> bool:
    """POST one event; True on a 2xx answer. Never raises."""
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    try:
        async with httpx.AsyncClient(timeout=settings.forwarding.forward_timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
    except httpx.TimeoutException:
        logger.warning("Collector timeout: %s", url)
        return False
    except httpx.HTTPStatusError as exc:
        logger.warning("Collector HTTP error %s for event %s", exc.response.status_code, payload.get("event_id"))
        return False
    except httpx.HTTPError as exc:
        logger.warning("Collector unreachable (%s): %s", exc, url)
        return False
    return True


async def forward_event(event: SystemEvent) -> None:
    """Event bus handler for EVENT_LOGGED."""
    url = settings.forwarding.forward_url
    if not url:
        return

    async with async_session_factory() as db:
        options = await load_options(db)
    if not options.api_key:
        logger.debug("Collector forwarding skipped: no API key")
        return

    if await send_event(url, options.api_key, build_payload(event)):
        logger.debug("Forwarded event %s to collector", event.data.get("id"))
