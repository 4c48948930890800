"""Display formatting for log rows and the session recorder.

The date filters are also registered on the Jinja2 environment in web.py.
Values stored in event details are HTML: links are built here as Markup and
the recorder escapes every other value before it is stored.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo

from markupsafe import Markup, escape

from src.config import settings
from src.models.base import as_utc

# Session start/end are stored in this layout, in the site time zone.
SESSION_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def site_zone() -> ZoneInfo:
    return _zone(settings.cms.site_timezone)


def to_site_time(value: datetime) -> datetime:
    """Convert a stored (naive UTC) or aware datetime to the site time zone."""
    return as_utc(value).astimezone(site_zone())


def format_datetime(value: datetime | None) -> str:
    """Format in the site time zone using the configured layout."""
    if value is None:
        return "-"
    return to_site_time(value).strftime(settings.cms.datetime_format)


def format_session_time(value: datetime) -> str:
    return to_site_time(value).strftime(SESSION_TIME_FORMAT)


def parse_session_time(value: str) -> datetime:
    """Inverse of format_session_time; returns an aware datetime."""
    return datetime.strptime(value, SESSION_TIME_FORMAT).replace(tzinfo=site_zone())


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" + ("" if count == 1 else "s")


def format_time_ago(value: datetime | None, now: datetime | None = None) -> str:
    """Human-readable distance to now: "5 mins", "2 hours", "3 weeks"."""
    if value is None:
        return "-"
    if now is None:
        now = datetime.now(UTC)
    seconds = abs((as_utc(now) - as_utc(value)).total_seconds())

    if seconds < 3600:
        return _plural(max(1, round(seconds / 60)), "min")
    if seconds < 86400:
        return _plural(max(1, round(seconds / 3600)), "hour")
    if seconds < 7 * 86400:
        return _plural(max(1, round(seconds / 86400)), "day")
    if seconds < 30 * 86400:
        return _plural(max(1, round(seconds / (7 * 86400))), "week")
    if seconds < 365 * 86400:
        return _plural(max(1, round(seconds / (30 * 86400))), "month")
    return _plural(max(1, round(seconds / (365 * 86400))), "year")


def format_duration(start: datetime, end: datetime) -> str:
    """Session length in hours and minutes, seconds rounded up to the next minute.

    Zero components are left out: "1 hour", "2 hours, 5 minutes", "3 minutes".
    A zero-length session gives an empty string.
    """
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    total_minutes = max(0, math.ceil(seconds / 60))
    hours, minutes = divmod(total_minutes, 60)

    parts = []
    if hours > 0:
        parts.append(_plural(hours, "hour"))
    if minutes > 0:
        parts.append(_plural(minutes, "minute"))
    return ", ".join(parts)


def format_event_datetime(value: datetime, now: datetime | None = None) -> str:
    """Grid date cell: absolute site time plus relative distance."""
    return f"<div>{format_datetime(value)} ({format_time_ago(value, now)} ago)</div>"


# ── HTML fragments ───────────────────────────────────────────────────


def link(url: str, text: Any, css_class: str | None = None, new_tab: bool = False) -> Markup:
    attrs = f' class="{css_class}"' if css_class else ""
    if new_tab:
        attrs += ' target="_blank"'
    return Markup(f'<a href="{escape(url)}"{attrs}>{escape(text)}</a>')


def details_table(rows: dict[str, Any], css_class: str) -> str:
    """Two-column table of label and value.

    Values are inserted as-is, so callers pass only already-escaped text or
    fragments built by link(). Details stored through the recorder qualify.
    """
    body = "".join(f"<tr><th>{escape(key)}</th><td>{Markup(value)}</td></tr>" for key, value in rows.items())
    return f"<table class='{css_class} logify-details-table'>{body}</table>"


def details_section(heading: str, table_html: str, css_class: str) -> str:
    return (
        f"<div class='{css_class} logify-details-section'>"
        f"<div class='logify-details-section-heading'><h4>{escape(heading)}</h4></div>"
        f"<div class='logify-details-section-content'>{table_html}</div>"
        "</div>"
    )
