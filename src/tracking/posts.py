"""Tracking of post lifecycle hooks: save, delete, trash, publish, unpublish.

A single save in the CMS fires save_post for the post, for each new revision
and sometimes for a status transition. Only the revision save is logged, on
behalf of its parent, and the request context stops any further post event
in the same request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.formatters import format_datetime, link
from src.integrations.cms.client import cms_client
from src.integrations.cms.urls import revision_compare_url
from src.models.enums import EntityClass, ObjectType, PostStatus
from src.schemas.cms import Post
from src.schemas.hooks import (
    DeletePostHook,
    PublishPostHook,
    SavePostHook,
    TrashedPostHook,
    UnpublishPostHook,
)
from src.tracking.context import RequestContext
from src.tracking.recorder import log_event
from src.tracking.users import user_profile_link

logger = logging.getLogger(__name__)


async def _type_label(post: Post, label: str | None) -> str:
    if label:
        return label
    return await cms_client.post_type_label(post.post_type)


def _created_at(post: Post, revisions: list[Post]) -> datetime | None:
    """Earliest date across the post and its revisions.

    The post's own post_date moves on publish, so revisions are the better record.
    """
    dates = [p.post_date for p in [post, *revisions] if p.post_date is not None]
    return min(dates) if dates else None


def _modified_at(post: Post, revisions: list[Post]) -> datetime | None:
    dates = [p.post_modified for p in [post, *revisions] if p.post_modified is not None]
    return max(dates) if dates else None


async def post_details(post: Post, revisions: list[Post]) -> dict[str, Any]:
    """Fixed detail set shown for every post event."""
    author = await cms_client.get_user(post.post_author) if post.post_author else None
    return {
        "Post ID": post.id,
        "Post type": post.post_type,
        "Author": user_profile_link(author),
        "Status": post.post_status,
        "Created": format_datetime(_created_at(post, revisions)),
        "Last modified": format_datetime(_modified_at(post, revisions)),
    }


def is_first_save(revision: Post, revisions: list[Post]) -> bool:
    """True when no real revision other than `revision` exists.

    Autosaves and auto-drafts do not count as real revisions.
    """
    for other in revisions:
        if other.is_autosave:
            continue
        if other.post_status != PostStatus.AUTO_DRAFT.value and other.id != revision.id:
            return False
    return True


async def track_post_save(db: AsyncSession, ctx: RequestContext, hook: SavePostHook) -> int | None:
    """Log "<Type> Created" or "<Type> Updated" for a revision save."""
    if ctx.already_logged(EntityClass.POST):
        return None
    if ctx.doing_autosave:
        return None

    revision = hook.post
    # Placeholders and trashing are not saves; trashing is logged separately.
    if revision.post_status in (PostStatus.AUTO_DRAFT.value, PostStatus.TRASH.value):
        return None
    if not revision.is_revision:
        return None

    parent = hook.parent or await cms_client.get_post(revision.post_parent)
    if parent is None:
        logger.warning("Revision %d has no resolvable parent (%d)", revision.id, revision.post_parent)
        return None

    creating = is_first_save(revision, hook.revisions)
    type_label = await _type_label(parent, hook.post_type_label)

    details = await post_details(parent, hook.revisions)
    if not creating:
        details["Changes"] = link(revision_compare_url(revision.id), "Compare revisions")

    event_id = await log_event(
        db,
        ctx,
        f"{type_label} {'Created' if creating else 'Updated'}",
        ObjectType.POST,
        parent.id,
        parent.post_title,
        details,
    )
    if event_id is not None:
        ctx.mark_logged(EntityClass.POST)
    return event_id


async def track_post_delete(db: AsyncSession, ctx: RequestContext, hook: DeletePostHook) -> int | None:
    if ctx.already_logged(EntityClass.POST) or hook.post.is_revision:
        return None

    post = hook.post
    details = await post_details(post, hook.revisions)
    details["Status"] = "delete"
    details["Last modified"] = format_datetime(ctx.now)

    event_id = await log_event(
        db, ctx, f"{await _type_label(post, hook.post_type_label)} Deleted",
        ObjectType.POST, post.id, post.post_title, details,
    )
    if event_id is not None:
        ctx.mark_logged(EntityClass.POST)
    return event_id


async def track_post_trash(db: AsyncSession, ctx: RequestContext, hook: TrashedPostHook) -> int | None:
    if ctx.already_logged(EntityClass.POST) or hook.post.is_revision:
        return None

    post = hook.post
    details = await post_details(post, hook.revisions)
    details["Previous status"] = hook.previous_status

    event_id = await log_event(
        db, ctx, f"{await _type_label(post, hook.post_type_label)} Trashed",
        ObjectType.POST, post.id, post.post_title, details,
    )
    if event_id is not None:
        ctx.mark_logged(EntityClass.POST)
    return event_id


async def track_post_publish(
    db: AsyncSession,
    ctx: RequestContext,
    hook: PublishPostHook | UnpublishPostHook,
    publish: bool = True,
) -> int | None:
    if ctx.already_logged(EntityClass.POST) or hook.post.is_revision:
        return None

    post = hook.post
    details = await post_details(post, hook.revisions)
    action = "Published" if publish else "Unpublished"

    event_id = await log_event(
        db, ctx, f"{await _type_label(post, hook.post_type_label)} {action}",
        ObjectType.POST, post.id, post.post_title, details,
    )
    if event_id is not None:
        ctx.mark_logged(EntityClass.POST)
    return event_id


async def track_post_unpublish(db: AsyncSession, ctx: RequestContext, hook: UnpublishPostHook) -> int | None:
    return await track_post_publish(db, ctx, hook, publish=False)
