"""HTTP Basic Auth and access control for the admin screens.

Credentials are CMS accounts: they are checked against the CMS REST API with
an application password, so whoever may sign in to the CMS may sign in here.
Access to the log is then narrowed by the access_control option.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.options import LogifyOptions, load_options, save_options
from src.config import settings
from src.db.engine import get_session
from src.integrations.cms.client import cms_client
from src.models.enums import AccessControl
from src.schemas.cms import User

logger = logging.getLogger(__name__)

security = HTTPBasic()

INSTALLER_ROLE = "administrator"


async def verify_admin(
    credentials: HTTPBasicCredentials = Depends(security),
) -> User:
    """FastAPI dependency — verify HTTP Basic credentials against the CMS.

    Returns the CMS account on success, raises 401 on failure.
    """
    user = await cms_client.authenticate(credentials.username, credentials.password)
    if user is None:
        logger.warning("Admin sign-in rejected for %s", credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return user


def has_log_access(user: User, options: LogifyOptions) -> bool:
    """Apply the access_control option to a signed-in account."""
    match options.access_control:
        case AccessControl.ONLY_ME:
            return options.plugin_installer is not None and user.id == options.plugin_installer
        case AccessControl.USER_ROLES:
            return any(role in options.view_roles for role in user.roles)


def _deny() -> HTTPException:
    """Send the user back to the CMS admin home, rendering nothing."""
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        headers={"Location": settings.cms.cms_admin_url},
    )


async def require_log_access(
    user: User = Depends(verify_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    """FastAPI dependency — the signed-in account, if it may view the log.

    The first administrator to open the screens while no installer is
    recorded becomes the installer.
    """
    options = await load_options(db)
    if options.plugin_installer is None and INSTALLER_ROLE in user.roles:
        options.plugin_installer = user.id
        await save_options(db, options)
        logger.info("Recorded user %d as the Logify installer", user.id)

    if not has_log_access(user, options):
        logger.info("Log access denied for user %d (%s)", user.id, options.access_control.value)
        raise _deny()
    return user
