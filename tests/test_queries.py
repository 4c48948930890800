"""Tests for src/admin/queries.py — grid rows, object links and dashboard figures."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from src.admin.queries import get_dashboard_stats, get_grid_page, resolve_object_link
from src.models.base import utc_now
from src.models.event import Event
from src.schemas.cms import Plugin, Post, Theme, User
from src.schemas.grid import GridRequest
from src.store.events import NewEvent, append_event

ADA = User(ID=7, user_login="ada", display_name="Ada <Admin>", user_email="ada@example.com",
           roles=["administrator"], avatar_url="https://example.com/a.png")


@pytest.fixture
def mock_cms():
    """Patch the CMS client used for link and name resolution."""
    with patch("src.admin.queries.cms_client") as mock:
        mock.get_user = AsyncMock(return_value=ADA)
        mock.get_post = AsyncMock(return_value=None)
        mock.get_theme = AsyncMock(return_value=None)
        mock.get_plugin = AsyncMock(return_value=None)
        yield mock


async def _stored(db, **fields) -> Event:
    values = {
        "event_type": "Post Updated",
        "object_type": "post",
        "object_id": 10,
        "object_label": "Hello world",
        "details": {"Post ID": "10"},
        "user_id": 7,
        "user_role": "administrator",
        "source_ip": "203.0.113.9",
    }
    values.update(fields)
    event_id = await append_event(db, NewEvent(**values))
    event = await db.get(Event, event_id)
    assert event is not None
    return event


def _post(status: str) -> Post:
    return Post(ID=10, post_type="post", post_title="Hello <world>", post_status=status)


class TestResolveObjectLink:
    @pytest.mark.asyncio
    async def test_published_post_links_to_permalink(self, db, mock_cms):
        mock_cms.get_post.return_value = _post("publish")
        html = await resolve_object_link(await _stored(db))
        assert "/?p=10" in html
        assert "Hello &lt;world&gt;" in html

    @pytest.mark.asyncio
    async def test_trashed_post_links_to_trash(self, db, mock_cms):
        mock_cms.get_post.return_value = _post("trash")
        html = await resolve_object_link(await _stored(db))
        assert "post_status=trash" in html

    @pytest.mark.asyncio
    async def test_draft_links_to_editor(self, db, mock_cms):
        mock_cms.get_post.return_value = _post("draft")
        html = await resolve_object_link(await _stored(db))
        assert "post.php?post=10&amp;action=edit" in html

    @pytest.mark.asyncio
    async def test_missing_post_uses_logged_label(self, db, mock_cms):
        html = await resolve_object_link(await _stored(db, object_label="<i>Gone</i>"))
        assert html == "&lt;i&gt;Gone&lt;/i&gt;"

    @pytest.mark.asyncio
    async def test_user(self, db, mock_cms):
        html = await resolve_object_link(await _stored(db, object_type="user", object_id=7))
        assert "user-edit.php?user_id=7" in html
        assert "Ada &lt;Admin&gt;" in html

    @pytest.mark.asyncio
    async def test_theme(self, db, mock_cms):
        mock_cms.get_theme.return_value = Theme(stylesheet="twentytwentyfour", name="Twenty Twenty-Four")
        html = await resolve_object_link(await _stored(db, object_type="theme", object_id="twentytwentyfour"))
        assert "theme-editor.php?theme=twentytwentyfour" in html

    @pytest.mark.asyncio
    async def test_plugin_is_plain_text(self, db, mock_cms):
        mock_cms.get_plugin.return_value = Plugin(plugin="akismet/akismet", name="Akismet")
        html = await resolve_object_link(await _stored(db, object_type="plugin", object_id="akismet/akismet"))
        assert html == "Akismet"

    @pytest.mark.asyncio
    async def test_non_numeric_post_id(self, db, mock_cms):
        event = await _stored(db, object_id="not-a-number", object_label="")
        assert await resolve_object_link(event) == "not-a-number"
        mock_cms.get_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_cms_answer_uses_logged_label(self, db, mock_cms):
        mock_cms.get_post.side_effect = KeyError("id")
        html = await resolve_object_link(await _stored(db, object_label="Hello world"))
        assert html == "Hello world"


class TestGridPage:
    @pytest.mark.asyncio
    async def test_rows_and_counts(self, db, mock_cms):
        for i in range(3):
            await _stored(db, object_id=i)
        await _stored(db, event_type="User Login", object_type="user", object_id=7, details={})

        grid = GridRequest(draw=3, start=0, length=2, search={"value": "post"})
        response = await get_grid_page(db, grid)

        assert response.draw == 3
        assert response.recordsTotal == 4
        assert response.recordsFiltered == 3
        assert len(response.data) == 2

        row = response.data[0]
        assert set(row) == {"id", "date_time", "user", "source_ip", "event_type", "object", "details"}
        assert "Ada &lt;Admin&gt;" in row["user"]
        assert "whatismyipaddress.com/ip/203.0.113.9" in row["source_ip"]
        assert "Event Details" in row["details"]
        assert "mailto:ada@example.com" in row["details"]
        assert mock_cms.get_user.await_count == 1

    @pytest.mark.asyncio
    async def test_system_actor(self, db, mock_cms):
        await _stored(db, user_id=None, user_role="")
        response = await get_grid_page(db, GridRequest())
        assert "System" in response.data[0]["user"]
        assert "Unknown" in response.data[0]["details"]
        mock_cms.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_stored_html_details_are_kept(self, db, mock_cms):
        await _stored(db, details={"Changes": '<a href="https://example.com/r">Compare revisions</a>'})
        response = await get_grid_page(db, GridRequest())
        assert '<a href="https://example.com/r">Compare revisions</a>' in response.data[0]["details"]


class TestDashboardStats:
    @pytest.mark.asyncio
    async def test_counts_and_recent(self, db, mock_cms):
        old = await _stored(db)
        old.date_time = utc_now() - timedelta(hours=5)
        very_old = await _stored(db)
        very_old.date_time = utc_now() - timedelta(days=3)
        for i in range(11):
            await _stored(db, object_id=i)
        await db.flush()

        stats = await get_dashboard_stats(db)
        assert stats["last_hour"] == 11
        assert stats["last_day"] == 12
        assert len(stats["recent"]) == 10
        assert stats["recent"][0]["username"] == "Ada <Admin>"
        assert "user-edit.php?user_id=7" in stats["recent"][0]["user_url"]
