"""Admin web screens — FastAPI router with Jinja2 templates.

Provides the dashboard widget, the log page (a DataTables grid fed by a JSON
endpoint) and the settings page with its reset action. Every route requires
a CMS account that passes the access_control option.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.auth import require_log_access
from src.admin.formatters import format_datetime, format_time_ago
from src.admin.options import LogifyOptions, load_options, save_options
from src.admin.queries import get_dashboard_stats, get_grid_page
from src.config import settings
from src.db.engine import get_session
from src.models.enums import AccessControl, PeriodUnit
from src.schemas.cms import User
from src.schemas.grid import GRID_COLUMNS, GridRequest, GridResponse
from src.store.events import truncate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Jinja2 templates
_template_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(_template_dir))

# Register custom filters
templates.env.filters["datetime"] = format_datetime
templates.env.filters["time_ago"] = format_time_ago


def _settings_form(form: Any, current: LogifyOptions) -> dict[str, Any]:
    """Map posted settings fields onto option values.

    Unchecked checkboxes are absent from the form, so booleans are read as
    presence. The installer is not editable.
    """
    return {
        "api_key": str(form.get("api_key", "")).strip(),
        "delete_on_uninstall": "delete_on_uninstall" in form,
        "roles_to_track": [str(r) for r in form.getlist("roles_to_track")],
        "view_roles": [str(r) for r in form.getlist("view_roles")],
        "keep_forever": "keep_forever" in form,
        "keep_period_quantity": form.get("keep_period_quantity") or current.keep_period_quantity,
        "keep_period_units": form.get("keep_period_units") or current.keep_period_units,
        "wp_cron_tracking": "wp_cron_tracking" in form,
        "access_control": form.get("access_control") or current.access_control,
        "plugin_installer": current.plugin_installer,
    }


def _settings_context(options: LogifyOptions, **extra: Any) -> dict[str, Any]:
    return {
        "options": options,
        "roles": settings.cms.roles,
        "period_units": list(PeriodUnit),
        "access_modes": list(AccessControl),
        **extra,
    }


# ── Full pages ───────────────────────────────────────────────────────


@router.get("/", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_log_access),
) -> HTMLResponse:
    """Dashboard widget — recent activity counts and the last 10 events."""
    stats = await get_dashboard_stats(db)
    return templates.TemplateResponse(request, "dashboard.html", {
        "stats": stats,
        "user": user,
    })


@router.get("/log", response_class=HTMLResponse)
async def log_page(
    request: Request,
    user: User = Depends(require_log_access),
) -> HTMLResponse:
    """Log page shell; rows are loaded by the grid from /admin/api/logs."""
    return templates.TemplateResponse(request, "log.html", {
        "columns": GRID_COLUMNS,
        "user": user,
    })


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(
    request: Request,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_log_access),
) -> HTMLResponse:
    options = await load_options(db)
    return templates.TemplateResponse(request, "settings.html", _settings_context(
        options,
        user=user,
        saved=request.query_params.get("saved") == "1",
        reset=request.query_params.get("reset") == "success",
    ))


@router.post("/settings", response_class=HTMLResponse)
async def save_settings(
    request: Request,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_log_access),
) -> Any:
    """Validate and store the settings form, then redirect back to it."""
    current = await load_options(db)
    form = await request.form()
    try:
        options = LogifyOptions.model_validate(_settings_form(form, current))
    except ValidationError as e:
        logger.info("Settings form rejected: %d errors", e.error_count())
        return templates.TemplateResponse(
            request,
            "settings.html",
            _settings_context(current, user=user, errors=[err["msg"] for err in e.errors()]),
            status_code=400,
        )

    await save_options(db, options)
    logger.info("Settings updated by user %d", user.id)
    return RedirectResponse(url="/admin/settings?saved=1", status_code=303)


@router.post("/settings/reset")
async def reset_log(
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_log_access),
) -> RedirectResponse:
    """Delete every event, then return to the settings page."""
    removed = await truncate(db)
    logger.warning("Event log reset by user %d (%d events removed)", user.id, removed)
    return RedirectResponse(url="/admin/settings?reset=success", status_code=303)


# ── JSON API ─────────────────────────────────────────────────────────


@router.post("/api/logs", response_model=GridResponse)
async def fetch_logs(
    grid: GridRequest,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_log_access),
) -> GridResponse:
    """Server-side processing endpoint for the log grid."""
    return await get_grid_page(db, grid)
