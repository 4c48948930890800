"""Tracking of account hooks and browser session activity."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from markupsafe import Markup
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.formatters import (
    format_datetime,
    format_duration,
    format_session_time,
    link,
    parse_session_time,
)
from src.integrations.cms.client import cms_client
from src.integrations.cms.urls import author_profile_url
from src.models.base import as_utc
from src.models.enums import ObjectType
from src.schemas.cms import User
from src.schemas.hooks import (
    Actor,
    DeleteUserHook,
    LoginHook,
    LogoutHook,
    UserActivityHook,
    UserRegisterHook,
)
from src.store.events import latest_event, update_details
from src.tracking.context import RequestContext
from src.tracking.recorder import log_event

logger = logging.getLogger(__name__)

SESSION_EVENT = "User Session"
LOGIN_EVENT = "User Login"

# A ping this soon after the recorded session end continues the session.
SESSION_TIMEOUT_SECONDS = 300


# ── Display helpers ──────────────────────────────────────────────────


def get_username(user: User | Actor | None) -> str:
    """Display name, then login, then nicename."""
    if user is None:
        return "Unknown"
    for name in (user.display_name, getattr(user, "user_login", ""), getattr(user, "user_nicename", "")):
        if name:
            return name
    return "Unknown"


def user_profile_link(user: User | None) -> Markup | str:
    if user is None:
        return "Unknown"
    return link(author_profile_url(user.id), get_username(user), css_class="logify-user-link")


def user_details(user: User) -> dict[str, Any]:
    details: dict[str, Any] = {
        "User ID": user.id,
        "Profile": user_profile_link(user),
        "Login": user.user_login,
        "Email": user.user_email,
        "Roles": ", ".join(user.roles),
    }
    if user.user_registered:
        details["Registered"] = format_datetime(user.user_registered)
    return details


def _as_actor(user: User) -> Actor:
    return Actor(id=user.id, roles=user.roles, display_name=get_username(user))


# ── Account hooks ────────────────────────────────────────────────────


async def track_login(db: AsyncSession, ctx: RequestContext, hook: LoginHook) -> int | None:
    """The batch actor is still anonymous at login time, so the user is the actor."""
    user = hook.user
    return await log_event(
        db, ctx, LOGIN_EVENT, ObjectType.USER, user.id, get_username(user), actor=_as_actor(user),
    )


async def track_logout(db: AsyncSession, ctx: RequestContext, hook: LogoutHook) -> int | None:
    user = hook.user or await cms_client.get_user(hook.user_id)
    actor = ctx.actor or (_as_actor(user) if user else None)
    return await log_event(
        db, ctx, "User Logout", ObjectType.USER, hook.user_id, get_username(user), actor=actor,
    )


async def track_user_registration(db: AsyncSession, ctx: RequestContext, hook: UserRegisterHook) -> int | None:
    user = hook.user
    return await log_event(
        db, ctx, "User Registered", ObjectType.USER, user.id, get_username(user), user_details(user),
    )


async def track_user_deletion(db: AsyncSession, ctx: RequestContext, hook: DeleteUserHook) -> int | None:
    user = hook.user
    details = user_details(user)
    if hook.reassign is not None:
        details["Data reassigned to"] = user_profile_link(hook.reassign)
    return await log_event(
        db, ctx, "User Deleted", ObjectType.USER, user.id, get_username(user), details,
    )


# ── Session activity ─────────────────────────────────────────────────


async def track_user_activity(db: AsyncSession, ctx: RequestContext, hook: UserActivityHook) -> int | None:
    """Extend the actor's current session, or start a new one.

    Returns the id of the session event written or updated, or None when
    there is no actor or the actor is not tracked.
    """
    actor = ctx.actor
    if actor is None:
        logger.debug("Activity ping without an actor")
        return None
    if not ctx.should_track(actor):
        return None

    now_text = format_session_time(ctx.now)
    previous = await latest_event(db, actor.id, SESSION_EVENT)
    if previous is not None:
        details = previous.details_map
        try:
            start = parse_session_time(details["Session start"])
            end = parse_session_time(details["Session end"])
        except (KeyError, ValueError):
            logger.warning("Session event %d has unreadable details", previous.id)
        else:
            # Reparse so the comparison runs at the stored (second) precision.
            now = parse_session_time(now_text)
            if (as_utc(now) - as_utc(end)).total_seconds() <= SESSION_TIMEOUT_SECONDS:
                details["Session end"] = now_text
                details["Session duration"] = format_duration(start, now) or "0 minutes"
                await update_details(db, previous.id, details)
                return previous.id

    return await log_event(
        db,
        ctx,
        SESSION_EVENT,
        ObjectType.USER,
        actor.id,
        actor.display_name or get_username(await cms_client.get_user(actor.id)),
        {
            "Session start": now_text,
            "Session end": now_text,
            "Session duration": "0 minutes",
        },
    )


# ── Lookups for the admin screens ────────────────────────────────────


async def last_login(db: AsyncSession, user_id: int) -> datetime | None:
    event = await latest_event(db, user_id, LOGIN_EVENT)
    return event.date_time if event else None


async def last_active(db: AsyncSession, user_id: int) -> datetime | None:
    """End of the user's most recent session, in the site time zone."""
    event = await latest_event(db, user_id, SESSION_EVENT)
    if event is None:
        return None
    try:
        return parse_session_time(event.details_map["Session end"])
    except (KeyError, ValueError):
        return None
