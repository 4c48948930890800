"""Uninstall command — removes Logify's tables if the options allow it.

Usage:
    python -m src.uninstall

Drops logify_events and logify_options when delete_on_uninstall is set;
otherwise leaves the data in place for a later reinstall.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from sqlalchemy.exc import OperationalError, ProgrammingError

from src.admin.options import load_options
from src.db.engine import async_session_factory, close_db, drop_db

logger = logging.getLogger(__name__)


async def uninstall() -> bool:
    """Drop the Logify tables when configured to. Returns True if dropped."""
    try:
        async with async_session_factory() as db:
            options = await load_options(db)
    except (OperationalError, ProgrammingError):
        logger.info("No Logify options table found; nothing to remove")
        return False

    if not options.delete_on_uninstall:
        logger.info("delete_on_uninstall is off; keeping Logify data")
        return False

    await drop_db()
    logger.warning("Logify tables dropped")
    return True


async def _main() -> None:
    try:
        await uninstall()
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, stream=sys.stdout)
    asyncio.run(_main())
