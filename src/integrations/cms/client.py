"""Async httpx client for the CMS REST API (/wp-json/wp/v2).

Used for everything the hook payloads do not carry: post type labels,
current post status for grid links, user display names, themes, plugins,
and checking admin credentials.

All lookups fail soft: a missing entity, a timeout or an HTTP error returns
None and is logged. Callers decide on the fallback.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from src.config import settings
from src.schemas.cms import Plugin, Post, PostType, Theme, User

logger = logging.getLogger(__name__)


def _rendered(value: Any) -> str:
    """REST fields like title/name come as {"raw", "rendered"} in edit context."""
    if isinstance(value, dict):
        return str(value.get("raw") or value.get("rendered") or "")
    return str(value or "")


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug("Could not parse CMS datetime: %s", value)
        return None


class CmsClient:
    """Thin async wrapper around the CMS REST API.

    Auth: HTTP Basic with an application password (cms_user / cms_app_password).
    """

    def __init__(self) -> None:
        self._base_url = settings.cms.api_url
        self._auth = (settings.cms.cms_user, settings.cms.cms_app_password)
        self._timeout = httpx.Timeout(settings.cms.cms_timeout, connect=2.0)
        self._type_labels: dict[str, str] = {}

    async def _get(
        self, path: str, auth: tuple[str, str] | None = None, **params: Any
    ) -> dict[str, Any] | None:
        """GET a JSON object; None on 404, timeout or any HTTP error."""
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params or None, auth=auth or self._auth)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException:
            logger.warning("CMS API timeout: %s", path)
            return None
        except httpx.HTTPStatusError as exc:
            logger.warning("CMS API HTTP error %s: %s", exc.response.status_code, path)
            return None
        except httpx.HTTPError as exc:
            logger.warning("CMS API unreachable (%s): %s", exc, path)
            return None
        except ValueError:
            logger.warning("CMS API returned a non-JSON body: %s", path)
            return None

        return payload if isinstance(payload, dict) else None

    async def _get_entity(
        self, path: str, auth: tuple[str, str] | None = None, **params: Any
    ) -> dict[str, Any] | None:
        """GET a post or user object; error bodies without an id count as missing."""
        payload = await self._get(path, auth=auth, **params)
        if payload is None:
            return None
        if "id" not in payload:
            logger.warning("CMS API answered without an entity (%s): %s", payload.get("code", "no code"), path)
            return None
        return payload

    # ── Posts ────────────────────────────────────────────────────────

    async def get_post(self, post_id: int) -> Post | None:
        """Current state of a post, looking in posts then pages."""
        for collection in ("posts", "pages"):
            payload = await self._get_entity(f"/wp/v2/{collection}/{post_id}", context="edit")
            if payload is not None:
                return self._parse_post(payload)
        return None

    @staticmethod
    def _parse_post(payload: dict[str, Any]) -> Post:
        return Post(
            id=payload["id"],
            post_type=payload.get("type", "post"),
            post_title=_rendered(payload.get("title")),
            post_status=payload.get("status", "draft"),
            post_name=payload.get("slug", ""),
            post_parent=payload.get("parent") or 0,
            post_author=payload.get("author"),
            post_date=_parse_datetime(payload.get("date_gmt")),
            post_modified=_parse_datetime(payload.get("modified_gmt")),
        )

    async def get_post_type(self, slug: str) -> PostType | None:
        payload = await self._get(f"/wp/v2/types/{slug}", context="edit")
        if payload is None:
            return None
        labels = payload.get("labels") or {}
        return PostType(slug=slug, singular_name=labels.get("singular_name") or payload.get("name") or "")

    async def post_type_label(self, slug: str) -> str:
        """Singular label for a post type, cached per process.

        Falls back to the capitalised slug when the CMS cannot be asked.
        """
        if slug in self._type_labels:
            return self._type_labels[slug]
        post_type = await self.get_post_type(slug)
        if post_type is None or not post_type.singular_name:
            return slug.replace("_", " ").replace("-", " ").title()
        self._type_labels[slug] = post_type.singular_name
        return post_type.singular_name

    # ── Users ────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> User | None:
        payload = await self._get_entity(f"/wp/v2/users/{user_id}", context="edit")
        if payload is None:
            return None
        return self._parse_user(payload)

    @staticmethod
    def _parse_user(payload: dict[str, Any]) -> User:
        avatars = payload.get("avatar_urls") or {}
        return User(
            id=payload["id"],
            user_login=payload.get("username", ""),
            user_nicename=payload.get("slug", ""),
            user_email=payload.get("email", ""),
            display_name=payload.get("name", ""),
            roles=list(payload.get("roles") or []),
            user_registered=_parse_datetime(payload.get("registered_date")),
            avatar_url=avatars.get("48") or avatars.get("24"),
        )

    async def authenticate(self, username: str, password: str) -> User | None:
        """Resolve the account behind a set of credentials, or None if rejected."""
        payload = await self._get_entity("/wp/v2/users/me", auth=(username, password), context="edit")
        if payload is None:
            return None
        return self._parse_user(payload)

    # ── Themes & plugins ─────────────────────────────────────────────

    async def get_theme(self, stylesheet: str) -> Theme | None:
        payload = await self._get(f"/wp/v2/themes/{stylesheet}")
        if payload is None:
            return None
        return Theme(stylesheet=payload.get("stylesheet", stylesheet), name=_rendered(payload.get("name")))

    async def get_plugin(self, plugin: str) -> Plugin | None:
        payload = await self._get(f"/wp/v2/plugins/{plugin}")
        if payload is None:
            return None
        return Plugin(plugin=payload.get("plugin", plugin), name=_rendered(payload.get("name")))


# Module-level singleton
cms_client = CmsClient()
