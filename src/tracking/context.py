"""Per-request tracking state.

One RequestContext is built for each hook batch (one CMS request) and passed
to every handler in it. It remembers which entity classes already produced
an event so a single logical save that fires several hooks is logged once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from src.admin.options import LogifyOptions
from src.models.enums import EntityClass
from src.schemas.hooks import Actor


@dataclass
class RequestContext:
    actor: Actor | None = None
    source_ip: str | None = None
    doing_cron: bool = False
    doing_autosave: bool = False
    options: LogifyOptions = field(default_factory=LogifyOptions)
    now: datetime = field(default_factory=lambda: datetime.now(UTC))
    logged: set[EntityClass] = field(default_factory=set)

    def already_logged(self, entity: EntityClass) -> bool:
        return entity in self.logged

    def mark_logged(self, entity: EntityClass) -> None:
        self.logged.add(entity)

    def should_track(self, actor: Actor | None) -> bool:
        """Apply the cron and tracked-roles settings.

        Actors without roles (anonymous, system) are always tracked.
        """
        if self.doing_cron and not self.options.wp_cron_tracking:
            return False
        if actor is None or not actor.roles:
            return True
        return self.options.tracks(actor.roles)
