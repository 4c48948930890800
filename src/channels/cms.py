"""CMS hook channel — receives hook batches from the Logify CMS connector.

Handles:
- POST /hooks/batch → every tracked hook fired during one CMS request

Batches are signed with an HMAC-SHA256 of the raw body in X-Logify-Signature.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import hashlib
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import emit
from src.admin.options import load_options
from src.config import settings
from src.db.engine import get_session
from src.schemas.events import EventType, SystemEvent
from src.schemas.hooks import HookBatch, HookBatchResult
from src.tracking.dispatch import dispatch_batch

logger = logging.getLogger(__name__)

hooks_router = APIRouter(prefix="/hooks", tags=["hooks"])

SIGNATURE_HEADER = "X-Logify-Signature"

# ── Helpers ──────────────────────────────────────────────────────────


def _verify_signature(payload: bytes, signature_header: str) -> bool:
    """Verify the batch signature.

    If hook_secret is not configured (dev mode), skip verification.
    """
    secret = settings.security.hook_secret
    if not secret:
        return True  # Dev mode: no secret configured

    if not signature_header.startswith("sha256="):
        return False

    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    received = signature_header[7:]  # Strip "sha256=" prefix
    return hmac.compare_digest(expected, received)


def client_ip(request: Request) -> str | None:
    """Originating address: shared-ISP header, then first proxy hop, then peer."""
    shared = request.headers.get("X-Client-IP", "").strip()
    if shared:
        return shared
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def _reject(reason: str, request: Request) -> None:
    logger.warning("Hook batch rejected: %s", reason)
    await emit(SystemEvent(
        event_type=EventType.HOOK_REJECTED,
        data={"reason": reason, "peer": request.client.host if request.client else None},
        source_module="channels.cms",
    ))


# ── Endpoint ─────────────────────────────────────────────────────────


@hooks_router.post("/batch", response_model=HookBatchResult)
async def receive_batch(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> HookBatchResult:
    """Record one CMS request's worth of hooks.

    The whole batch shares one dedup scope. Per-hook validation failures are
    listed in `rejected`; anything else fails the batch with a 500.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not _verify_signature(body, signature):
        await _reject("invalid signature", request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    try:
        batch = HookBatch.model_validate_json(body)
    except ValidationError as e:
        await _reject("malformed batch", request)
        raise HTTPException(status_code=422, detail="Malformed hook batch") from e

    if batch.source_ip is None:
        batch.source_ip = client_ip(request)

    options = await load_options(db)
    result = await dispatch_batch(db, batch, options)
    logger.info(
        "Hook batch from %s: %d hooks, %d logged, %d rejected",
        batch.source_ip, len(batch.hooks), len(result.logged), len(result.rejected),
    )
    return result
