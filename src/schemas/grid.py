"""Server-side processing contract of the log grid widget (DataTables)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Must match the column order of the grid in templates/log.html.
GRID_COLUMNS: tuple[str, ...] = ("id", "date_time", "user", "source_ip", "event_type", "object")


class GridOrder(BaseModel):
    column: int = 1
    dir: str = "desc"


class GridSearch(BaseModel):
    value: str = ""


class GridRequest(BaseModel):
    draw: int = 0
    start: int | None = None
    length: int | None = None
    order: list[GridOrder] = Field(default_factory=list)
    search: GridSearch = Field(default_factory=GridSearch)

    @property
    def sort_column(self) -> str | None:
        """Column name for the first order clause; None if absent or out of range."""
        if not self.order:
            return None
        index = self.order[0].column
        if 0 <= index < len(GRID_COLUMNS):
            return GRID_COLUMNS[index]
        return None

    @property
    def sort_direction(self) -> str | None:
        return self.order[0].dir if self.order else None


class GridResponse(BaseModel):
    draw: int
    recordsTotal: int  # noqa: N815  wire names
    recordsFiltered: int  # noqa: N815
    data: list[dict[str, Any]]
