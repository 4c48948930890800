"""SQLAlchemy ORM models for Logify.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.base import Base
from src.models.enums import (
    AccessControl,
    EntityClass,
    ObjectType,
    PeriodUnit,
    PostStatus,
    SortColumn,
    SortDirection,
)
from src.models.event import Event
from src.models.option import Option

__all__ = [
    # Base
    "Base",
    # Models
    "Event",
    "Option",
    # Enums
    "AccessControl",
    "EntityClass",
    "ObjectType",
    "PeriodUnit",
    "PostStatus",
    "SortColumn",
    "SortDirection",
]
