"""Event retention — periodic purge of events past the configured age.

The keep_forever / keep_period_* options decide the cutoff (a month counts
as 30 days, a year as 365). With keep_forever set nothing is deleted.

Started from the FastAPI lifespan as a background task that runs once at
startup and then every RETENTION_INTERVAL_SECONDS.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.options import LogifyOptions, load_options
from src.config import settings
from src.db.engine import async_session_factory
from src.store.events import purge_before

logger = logging.getLogger(__name__)


def retention_cutoff(options: LogifyOptions, now: datetime | None = None) -> datetime | None:
    """Oldest timestamp (naive UTC) to keep, or None to keep everything."""
    period = options.keep_period
    if period is None:
        return None
    if now is None:
        now = datetime.now(UTC)
    return now.astimezone(UTC).replace(tzinfo=None) - period


async def purge_expired_events(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete events older than the retention period. Returns the count."""
    options = await load_options(db)
    cutoff = retention_cutoff(options, now)
    if cutoff is None:
        logger.debug("Retention: keeping events forever")
        return 0
    return await purge_before(db, cutoff)


async def enforce_retention() -> int:
    """Run one retention pass in its own session.

    Safe to call on every tick. Idempotent: running twice is harmless.
    Failures are logged and reported as zero deletions.
    """
    try:
        async with async_session_factory() as db:
            count = await purge_expired_events(db)
            await db.commit()
    except Exception:
        logger.exception("Retention job failed")
        return 0

    if count:
        logger.info("Retention job complete: %d events deleted", count)
    return count


async def retention_loop(interval: float | None = None) -> None:
    """Run enforce_retention forever; cancel the task to stop it."""
    if interval is None:
        interval = settings.retention_interval_seconds
    while True:
        await enforce_retention()
        await asyncio.sleep(interval)
