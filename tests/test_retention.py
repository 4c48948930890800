"""Tests for src/security/retention.py — event retention enforcement."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.admin.options import LogifyOptions, save_options
from src.models.enums import PeriodUnit
from src.models.event import Event
from src.security.retention import enforce_retention, purge_expired_events, retention_cutoff
from src.store.events import NewEvent, append_event, query_events

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


async def _event_at(db, when: datetime) -> int:
    event_id = await append_event(db, NewEvent(event_type="Post Created", object_type="post", object_id=1))
    event = await db.get(Event, event_id)
    event.date_time = when
    await db.flush()
    return event_id


class TestRetentionCutoff:
    def test_keep_forever(self):
        assert retention_cutoff(LogifyOptions(), NOW) is None

    def test_one_year(self):
        options = LogifyOptions(keep_forever=False)
        assert retention_cutoff(options, NOW) == datetime(2025, 10, 18, 12, 0)

    def test_months_count_thirty_days(self):
        options = LogifyOptions(keep_forever=False, keep_period_quantity=2, keep_period_units=PeriodUnit.MONTH)
        assert retention_cutoff(options, NOW) == datetime(2026, 8, 19, 12, 0)

    def test_days(self):
        options = LogifyOptions(keep_forever=False, keep_period_quantity=3, keep_period_units=PeriodUnit.DAY)
        assert retention_cutoff(options, NOW) == datetime(2026, 10, 15, 12, 0)


class TestPurgeExpiredEvents:
    @pytest.mark.asyncio
    async def test_keep_forever_deletes_nothing(self, db):
        await _event_at(db, datetime(2000, 1, 1))
        assert await purge_expired_events(db, NOW) == 0
        assert (await query_events(db)).total == 1

    @pytest.mark.asyncio
    async def test_deletes_only_expired(self, db):
        await save_options(db, LogifyOptions(
            keep_forever=False, keep_period_quantity=7, keep_period_units=PeriodUnit.DAY,
        ))
        await _event_at(db, datetime(2026, 10, 1, 12, 0))
        recent = await _event_at(db, datetime(2026, 10, 17, 12, 0))

        assert await purge_expired_events(db, NOW) == 1
        page = await query_events(db)
        assert [e.id for e in page.events] == [recent]

    @pytest.mark.asyncio
    async def test_idempotent(self, db):
        await save_options(db, LogifyOptions(keep_forever=False, keep_period_units=PeriodUnit.DAY))
        await _event_at(db, NOW.replace(tzinfo=None) - timedelta(days=5))
        assert await purge_expired_events(db, NOW) == 1
        assert await purge_expired_events(db, NOW) == 0


class TestEnforceRetention:
    @pytest.mark.asyncio
    async def test_commits_own_session(self):
        mock_session = AsyncMock()
        with (
            patch("src.security.retention.async_session_factory") as mock_factory,
            patch("src.security.retention.purge_expired_events", new_callable=AsyncMock) as mock_purge,
        ):
            mock_factory.return_value.__aenter__ = AsyncMock(return_value=mock_session)
            mock_factory.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_purge.return_value = 4

            assert await enforce_retention() == 4
            mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_reports_zero(self):
        with patch("src.security.retention.async_session_factory") as mock_factory:
            mock_factory.return_value.__aenter__ = AsyncMock(side_effect=RuntimeError("db down"))
            mock_factory.return_value.__aexit__ = AsyncMock(return_value=False)
            assert await enforce_retention() == 0

    @pytest.mark.asyncio
    async def test_no_session_left_open_on_error(self):
        mock_session = MagicMock()
        mock_session.commit = AsyncMock()
        exit_mock = AsyncMock(return_value=False)
        with (
            patch("src.security.retention.async_session_factory") as mock_factory,
            patch("src.security.retention.purge_expired_events", new_callable=AsyncMock) as mock_purge,
        ):
            mock_factory.return_value.__aenter__ = AsyncMock(return_value=mock_session)
            mock_factory.return_value.__aexit__ = exit_mock
            mock_purge.side_effect = RuntimeError("boom")

            assert await enforce_retention() == 0
            exit_mock.assert_awaited_once()
            mock_session.commit.assert_not_called()
