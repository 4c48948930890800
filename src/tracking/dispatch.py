"""Routes each hook in a batch to its tracking handler.

All hooks in a batch share one RequestContext, so the post dedup guard spans
the whole CMS request the batch came from.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.options import LogifyOptions
from src.schemas.hooks import (
    DeletePostHook,
    DeleteUserHook,
    HookBatch,
    HookBatchResult,
    HookCall,
    LoginHook,
    LogoutHook,
    PublishPostHook,
    SavePostHook,
    TrashedPostHook,
    UnpublishPostHook,
    UserActivityHook,
    UserRegisterHook,
)
from src.store.events import InvalidEventError
from src.tracking import posts, users
from src.tracking.context import RequestContext

logger = logging.getLogger(__name__)


async def _handle(db: AsyncSession, ctx: RequestContext, hook: HookCall) -> int | None:
    match hook:
        case SavePostHook():
            return await posts.track_post_save(db, ctx, hook)
        case DeletePostHook():
            return await posts.track_post_delete(db, ctx, hook)
        case TrashedPostHook():
            return await posts.track_post_trash(db, ctx, hook)
        case PublishPostHook():
            return await posts.track_post_publish(db, ctx, hook)
        case UnpublishPostHook():
            return await posts.track_post_unpublish(db, ctx, hook)
        case LoginHook():
            return await users.track_login(db, ctx, hook)
        case LogoutHook():
            return await users.track_logout(db, ctx, hook)
        case UserRegisterHook():
            return await users.track_user_registration(db, ctx, hook)
        case DeleteUserHook():
            return await users.track_user_deletion(db, ctx, hook)
        case UserActivityHook():
            return await users.track_user_activity(db, ctx, hook)


async def dispatch_batch(
    db: AsyncSession,
    batch: HookBatch,
    options: LogifyOptions,
    now: datetime | None = None,
) -> HookBatchResult:
    """Run every hook in firing order and collect what was logged.

    Validation failures are reported per hook; any other error propagates
    and the caller's session rolls the whole batch back.
    """
    ctx = RequestContext(
        actor=batch.actor,
        source_ip=batch.source_ip,
        doing_cron=batch.doing_cron,
        doing_autosave=batch.doing_autosave,
        options=options,
    )
    if now is not None:
        ctx.now = now

    result = HookBatchResult()
    for hook in batch.hooks:
        try:
            event_id = await _handle(db, ctx, hook)
        except InvalidEventError as e:
            logger.warning("Rejected %s hook: %s", hook.hook, e)
            result.rejected.append(f"{hook.hook}: {e}")
            continue
        if event_id is not None:
            result.logged.append(event_id)

    logger.debug("Batch processed: %d logged, %d rejected", len(result.logged), len(result.rejected))
    return result
