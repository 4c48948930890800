"""Tests for the CMS REST client.

Covers:
- Post lookup falls back from posts to pages
- User parsing from the edit context
- Credential check uses the caller's credentials
- Post type labels: cached, capitalised slug on failure
- Timeout / HTTP errors fail soft
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.integrations.cms.client import CmsClient

# ── Helpers ──────────────────────────────────────────────────────────


def _make_response(payload: dict | None, status_code: int = 200) -> MagicMock:
    """Build a mock httpx.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.raise_for_status = MagicMock()  # no-op for 200
    return resp


def _patch_http(get: AsyncMock):
    """Patch httpx.AsyncClient so every request goes through `get`."""
    patcher = patch("httpx.AsyncClient")
    mock_client_cls = patcher.start()
    mock_http = AsyncMock()
    mock_http.get = get
    mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_http)
    mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    return patcher


USER_PAYLOAD = {
    "id": 3,
    "username": "ada",
    "slug": "ada-l",
    "email": "ada@example.com",
    "name": "Ada Lovelace",
    "roles": ["editor"],
    "registered_date": "2026-01-02T03:04:05+00:00",
    "avatar_urls": {"24": "https://example.com/a24.png", "48": "https://example.com/a48.png"},
}


class TestPosts:
    @pytest.mark.asyncio
    async def test_falls_back_to_pages(self):
        page = {
            "id": 12,
            "type": "page",
            "title": {"raw": "About", "rendered": "About"},
            "status": "publish",
            "slug": "about",
            "author": 1,
            "date_gmt": "2026-10-01T08:00:00",
            "modified_gmt": "2026-10-02T09:00:00",
        }
        get = AsyncMock(side_effect=[_make_response(None, 404), _make_response(page)])
        patcher = _patch_http(get)
        try:
            post = await CmsClient().get_post(12)
        finally:
            patcher.stop()

        assert post is not None
        assert post.id == 12
        assert post.post_type == "page"
        assert post.post_title == "About"
        assert post.post_modified == datetime(2026, 10, 2, 9, 0)
        assert "/wp/v2/pages/12" in get.call_args[0][0]

    @pytest.mark.asyncio
    async def test_missing_everywhere(self):
        patcher = _patch_http(AsyncMock(return_value=_make_response(None, 404)))
        try:
            assert await CmsClient().get_post(99) is None
        finally:
            patcher.stop()


class TestUsers:
    @pytest.mark.asyncio
    async def test_get_user(self):
        patcher = _patch_http(AsyncMock(return_value=_make_response(USER_PAYLOAD)))
        try:
            user = await CmsClient().get_user(3)
        finally:
            patcher.stop()

        assert user is not None
        assert user.id == 3
        assert user.user_login == "ada"
        assert user.user_nicename == "ada-l"
        assert user.display_name == "Ada Lovelace"
        assert user.roles == ["editor"]
        assert user.avatar_url == "https://example.com/a48.png"

    @pytest.mark.asyncio
    async def test_authenticate_uses_given_credentials(self):
        get = AsyncMock(return_value=_make_response(USER_PAYLOAD))
        patcher = _patch_http(get)
        try:
            user = await CmsClient().authenticate("ada", "app-pass")
        finally:
            patcher.stop()

        assert user is not None
        assert get.call_args.kwargs["auth"] == ("ada", "app-pass")
        assert get.call_args[0][0].endswith("/wp/v2/users/me")

    @pytest.mark.asyncio
    async def test_authenticate_rejected(self):
        resp = _make_response({"code": "invalid_username"}, 401)
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "401", request=MagicMock(), response=MagicMock(status_code=401),
        )
        patcher = _patch_http(AsyncMock(return_value=resp))
        try:
            assert await CmsClient().authenticate("ada", "wrong") is None
        finally:
            patcher.stop()


class TestPostTypeLabel:
    @pytest.mark.asyncio
    async def test_cached(self):
        get = AsyncMock(return_value=_make_response({"name": "Books", "labels": {"singular_name": "Book"}}))
        patcher = _patch_http(get)
        try:
            client = CmsClient()
            assert await client.post_type_label("book") == "Book"
            assert await client.post_type_label("book") == "Book"
        finally:
            patcher.stop()
        assert get.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_slug(self):
        patcher = _patch_http(AsyncMock(side_effect=httpx.TimeoutException("timeout")))
        try:
            assert await CmsClient().post_type_label("case_study") == "Case Study"
        finally:
            patcher.stop()


class TestFailSoft:
    @pytest.mark.asyncio
    async def test_connection_error(self):
        patcher = _patch_http(AsyncMock(side_effect=httpx.ConnectError("refused")))
        try:
            assert await CmsClient().get_user(1) is None
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_non_object_payload(self):
        patcher = _patch_http(AsyncMock(return_value=_make_response([])))  # type: ignore[arg-type]
        try:
            assert await CmsClient().get_theme("twentytwentyfour") is None
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_error_body_without_id(self):
        get = AsyncMock(return_value=_make_response({"code": "rest_forbidden", "message": "Sorry"}))
        patcher = _patch_http(get)
        try:
            client = CmsClient()
            assert await client.get_post(5) is None
            assert await client.get_user(5) is None
            assert await client.authenticate("ada", "app-pass") is None
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        resp = _make_response(None)
        resp.json.side_effect = ValueError("Expecting value")
        patcher = _patch_http(AsyncMock(return_value=resp))
        try:
            assert await CmsClient().get_user(1) is None
        finally:
            patcher.stop()
