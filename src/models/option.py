"""Option model — persisted plugin settings, one row per option name."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class Option(Base):
    """A named settings value edited from the admin settings page."""

    __tablename__ = "logify_options"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<Option {self.name}={self.value!r}>"
