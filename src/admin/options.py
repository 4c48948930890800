"""Plugin options — the settings page's view of the logify_options table.

Each field of LogifyOptions is stored as its own row so options written by
older versions survive new fields being added.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models.enums import AccessControl, PeriodUnit
from src.models.option import Option

logger = logging.getLogger(__name__)


def sanitize_roles(roles: list[str]) -> list[str]:
    """Drop anything that is not a role the CMS knows about."""
    valid = set(settings.cms.roles)
    return [role for role in roles if role in valid]


class LogifyOptions(BaseModel):
    api_key: str = ""
    delete_on_uninstall: bool = False
    roles_to_track: list[str] = Field(default_factory=lambda: ["administrator"])
    view_roles: list[str] = Field(default_factory=lambda: ["administrator"])
    keep_forever: bool = True
    keep_period_quantity: int = Field(default=1, ge=1)
    keep_period_units: PeriodUnit = PeriodUnit.YEAR
    wp_cron_tracking: bool = False
    access_control: AccessControl = AccessControl.ONLY_ME
    plugin_installer: int | None = None

    @field_validator("roles_to_track", "view_roles")
    @classmethod
    def _known_roles(cls, v: list[str]) -> list[str]:
        return sanitize_roles(v)

    @property
    def keep_period(self) -> timedelta | None:
        """How long events are kept; None means forever."""
        if self.keep_forever:
            return None
        return timedelta(days=self.keep_period_quantity * self.keep_period_units.days)

    def tracks(self, roles: list[str]) -> bool:
        """Whether an actor holding `roles` should be tracked."""
        return any(role in self.roles_to_track for role in roles)


async def load_options(db: AsyncSession) -> LogifyOptions:
    """Read all stored options over the defaults."""
    result = await db.execute(select(Option))
    stored: dict[str, Any] = {opt.name: opt.value for opt in result.scalars().all()}
    known = {k: v for k, v in stored.items() if k in LogifyOptions.model_fields}
    return LogifyOptions.model_validate(known)


async def save_options(db: AsyncSession, options: LogifyOptions) -> None:
    """Upsert every option row."""
    values = options.model_dump(mode="json")
    result = await db.execute(select(Option).where(Option.name.in_(list(values))))
    existing = {opt.name: opt for opt in result.scalars().all()}
    for name, value in values.items():
        if name in existing:
            existing[name].value = value
        else:
            db.add(Option(name=name, value=value))
    await db.flush()
    logger.info("Options saved: %s", sorted(k for k in values if k != "api_key"))
