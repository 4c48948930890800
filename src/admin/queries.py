"""Read-side queries for the admin screens.

Turns stored events into display-ready grid rows and gathers the dashboard
widget figures. CMS lookups made while building a page are cached for that
page only.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from markupsafe import escape
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.formatters import (
    details_section,
    details_table,
    format_datetime,
    format_event_datetime,
    link,
)
from src.integrations.cms.client import cms_client
from src.integrations.cms.urls import (
    author_profile_url,
    ip_lookup_url,
    post_edit_url,
    post_permalink,
    theme_editor_url,
    trash_listing_url,
    user_edit_url,
)
from src.models.base import as_utc
from src.models.enums import ObjectType, PostStatus
from src.models.event import Event
from src.schemas.cms import User
from src.schemas.grid import GridRequest, GridResponse
from src.store.events import count_since, query_events, recent_events
from src.tracking.users import get_username, last_login

logger = logging.getLogger(__name__)


class UserCache:
    """CMS user lookups for one page build."""

    def __init__(self) -> None:
        self._users: dict[int, User | None] = {}

    async def get(self, user_id: int | None) -> User | None:
        if user_id is None:
            return None
        if user_id not in self._users:
            self._users[user_id] = await cms_client.get_user(user_id)
        return self._users[user_id]


# ── Object links ─────────────────────────────────────────────────────


async def resolve_object_link(event: Event) -> str:
    """Link to the event's object as it is *now* in the CMS.

    Posts link by current status, so a link can differ from what it was when
    the event was logged. Missing objects and CMS failures fall back to the
    label cached at logging time.
    """
    fallback = str(escape(event.object_label or event.object_id))
    try:
        object_type = ObjectType(event.object_type)
    except ValueError:
        logger.warning("Event %d has unknown object type %r", event.id, event.object_type)
        return fallback

    try:
        match object_type:
            case ObjectType.POST:
                post = await cms_client.get_post(int(event.object_id))
                if post is None:
                    return fallback
                if post.post_status == PostStatus.PUBLISH.value:
                    url = post_permalink(post.id)
                elif post.post_status == PostStatus.TRASH.value:
                    url = trash_listing_url(post.post_type)
                else:
                    url = post_edit_url(post.id)
                return link(url, post.post_title or event.object_label or post.id)

            case ObjectType.USER:
                user = await cms_client.get_user(int(event.object_id))
                if user is None:
                    return fallback
                return link(user_edit_url(user.id), get_username(user))

            case ObjectType.THEME:
                theme = await cms_client.get_theme(event.object_id)
                if theme is None:
                    return fallback
                return link(theme_editor_url(theme.stylesheet), theme.name)

            case ObjectType.PLUGIN:
                plugin = await cms_client.get_plugin(event.object_id)
                return str(escape(plugin.name)) if plugin else fallback
    except (KeyError, ValueError):
        logger.warning("Could not resolve object %s:%s for event %d", event.object_type, event.object_id, event.id)
        return fallback


# ── Grid rows ────────────────────────────────────────────────────────


def _actor_name(user: User | None, event: Event) -> str:
    if user is not None:
        return get_username(user)
    return "Unknown" if event.user_id is not None else "System"


def _user_cell(event: Event, user: User | None) -> str:
    avatar = f'<img class="logify-avatar" src="{escape(user.avatar_url)}" width="32" height="32" alt="">' if (
        user and user.avatar_url
    ) else ""
    name = _actor_name(user, event)
    name_html = link(author_profile_url(event.user_id), name) if event.user_id is not None else escape(name)
    return (
        f'{avatar} <div class="logify-user-info">{name_html}<br>'
        f'<span class="logify-user-role">{escape(event.user_role.title())}</span></div>'
    )


def _source_ip_cell(event: Event) -> str:
    if not event.source_ip:
        return ""
    return link(ip_lookup_url(event.source_ip), event.source_ip, new_tab=True)


async def _user_details(db: AsyncSession, event: Event, user: User | None) -> str:
    rows: dict[str, Any] = {
        "User": link(author_profile_url(event.user_id), _actor_name(user, event))
        if event.user_id is not None else "System",
    }
    if user and user.user_email:
        rows["Email"] = link(f"mailto:{user.user_email}", user.user_email)
    rows["Role"] = escape(event.user_role)
    rows["ID"] = escape(event.user_id if event.user_id is not None else "")
    rows["Source IP"] = escape(event.source_ip or "")
    login = await last_login(db, event.user_id) if event.user_id is not None else None
    rows["Last login"] = format_datetime(login) if login else "Unknown"
    return details_table(rows, "logify-user-details-table")


async def build_grid_row(
    db: AsyncSession, event: Event, users: UserCache, now: datetime | None = None,
) -> dict[str, Any]:
    user = await users.get(event.user_id)
    event_details = details_table(event.details_map, "logify-event-details-table")
    user_details = await _user_details(db, event, user)
    return {
        "id": event.id,
        "date_time": format_event_datetime(event.date_time, now),
        "user": _user_cell(event, user),
        "source_ip": str(_source_ip_cell(event)),
        "event_type": str(escape(event.event_type)),
        "object": str(await resolve_object_link(event)),
        "details": (
            "<div class='logify-details'>"
            + details_section("Event Details", event_details, "logify-event-details")
            + details_section("User Details", user_details, "logify-user-details")
            + "</div>"
        ),
    }


async def get_grid_page(db: AsyncSession, request: GridRequest) -> GridResponse:
    """Answer one server-side processing request from the log grid."""
    page = await query_events(
        db,
        search_text=request.search.value,
        sort_column=request.sort_column,
        sort_direction=request.sort_direction,
        limit=request.length,
        offset=request.start,
    )
    users = UserCache()
    now = datetime.now(UTC)
    rows = [await build_grid_row(db, event, users, now) for event in page.events]
    return GridResponse(
        draw=request.draw,
        recordsTotal=page.total,
        recordsFiltered=page.filtered,
        data=rows,
    )


# ── Dashboard widget ─────────────────────────────────────────────────


async def get_dashboard_stats(db: AsyncSession, now: datetime | None = None) -> dict[str, Any]:
    """Event counts for the last hour and day, and the ten latest events.

    Each recent event carries its actor's name and edit link.
    """
    if now is None:
        now = datetime.now(UTC)
    now = as_utc(now).astimezone(UTC).replace(tzinfo=None)

    last_hour = await count_since(db, now - timedelta(hours=1))
    last_day = await count_since(db, now - timedelta(hours=24))

    users = UserCache()
    recent = []
    for event in await recent_events(db, limit=10):
        user = await users.get(event.user_id)
        recent.append({
            "event": event,
            "username": _actor_name(user, event),
            "user_url": user_edit_url(event.user_id) if event.user_id is not None else None,
        })

    return {"last_hour": last_hour, "last_day": last_day, "recent": recent}
