"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin so they serialize as their plain value.
"""

from __future__ import annotations

from enum import Enum


class ObjectType(str, Enum):
    """What an event is about — governs how object_id is read and linked."""

    POST = "post"
    USER = "user"
    THEME = "theme"
    PLUGIN = "plugin"


class EntityClass(str, Enum):
    """Dedup key: at most one event per entity class per host request."""

    POST = "post"
    USER = "user"


class PostStatus(str, Enum):
    """CMS post statuses the recorder cares about."""

    PUBLISH = "publish"
    DRAFT = "draft"
    AUTO_DRAFT = "auto-draft"
    INHERIT = "inherit"
    TRASH = "trash"
    PENDING = "pending"
    PRIVATE = "private"
    FUTURE = "future"


class AccessControl(str, Enum):
    """Who may open the log screens."""

    ONLY_ME = "only_me"  # the user who installed Logify
    USER_ROLES = "user_roles"  # anyone holding one of the view roles


class PeriodUnit(str, Enum):
    """Retention period units."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def days(self) -> int:
        return {"day": 1, "week": 7, "month": 30, "year": 365}[self.value]


class SortColumn(str, Enum):
    """Log grid columns, in the order the grid widget indexes them."""

    ID = "id"
    DATE_TIME = "date_time"
    USER = "user"
    SOURCE_IP = "source_ip"
    EVENT_TYPE = "event_type"
    OBJECT = "object"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"
