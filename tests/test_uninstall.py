"""Tests for the uninstall command."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from src.admin.options import LogifyOptions
from src.uninstall import uninstall


@pytest.fixture
def mock_uninstall():
    with (
        patch("src.uninstall.async_session_factory") as mock_factory,
        patch("src.uninstall.load_options", new_callable=AsyncMock) as mock_load,
        patch("src.uninstall.drop_db", new_callable=AsyncMock) as mock_drop,
    ):
        mock_factory.return_value.__aenter__ = AsyncMock(return_value=AsyncMock())
        mock_factory.return_value.__aexit__ = AsyncMock(return_value=False)
        yield {"load": mock_load, "drop": mock_drop}


class TestUninstall:
    @pytest.mark.asyncio
    async def test_keeps_data_by_default(self, mock_uninstall):
        mock_uninstall["load"].return_value = LogifyOptions()
        assert await uninstall() is False
        mock_uninstall["drop"].assert_not_called()

    @pytest.mark.asyncio
    async def test_drops_when_enabled(self, mock_uninstall):
        mock_uninstall["load"].return_value = LogifyOptions(delete_on_uninstall=True)
        assert await uninstall() is True
        mock_uninstall["drop"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_tables(self, mock_uninstall):
        mock_uninstall["load"].side_effect = OperationalError("SELECT", {}, Exception("no such table"))
        assert await uninstall() is False
        mock_uninstall["drop"].assert_not_called()
