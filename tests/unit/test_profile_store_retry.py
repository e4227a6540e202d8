"""ProfileStore retry and error classification, against a mocked session."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ecoquest.db.models import User
from ecoquest.errors import StoreUnavailable
from ecoquest.store.profile_store import ProfileStore


def _result(rows: list[dict]) -> MagicMock:
    result = MagicMock()
    result.returns_rows = True
    result.mappings.return_value = rows
    return result


def _session(*effects) -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock(side_effect=list(effects))
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


def _store(session: MagicMock, attempts: int = 3) -> ProfileStore:
    return ProfileStore(
        session,
        retry_attempts=attempts,
        retry_base_delay=0,
        retry_max_delay=0,
        dialect="sqlite",
    )


def _operational() -> OperationalError:
    return OperationalError("SELECT 1", {}, ConnectionError("connection reset"))


class TestRetry:
    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self):
        session = _session(_operational(), _operational(), _result([{"id": "u1", "points": 0}]))
        record = await _store(session).get(User, "u1")
        assert record == {"id": "u1", "points": 0}
        assert session.execute.await_count == 3
        assert session.rollback.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_configured_attempts(self):
        session = _session(_operational(), _operational(), _operational(), _result([]))
        with pytest.raises(StoreUnavailable) as exc_info:
            await _store(session).get(User, "u1")
        assert exc_info.value.transient is True
        assert session.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_integrity_errors_are_not_retried(self):
        err = IntegrityError("INSERT", {}, Exception("duplicate key"))
        session = _session(err, _result([]))
        with pytest.raises(StoreUnavailable) as exc_info:
            await _store(session).insert(User, {"id": "u1"})
        assert exc_info.value.transient is False
        assert session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_row_is_none(self):
        session = _session(_result([]))
        assert await _store(session).get(User, "nobody") is None


class TestNotifications:
    @pytest.mark.asyncio
    async def test_writes_notify_their_table(self):
        notifier = MagicMock()
        notifier.notify = AsyncMock()
        session = _session(_result([{"id": "u1"}]))
        store = ProfileStore(session, notifier, retry_attempts=1, dialect="sqlite")
        await store.update(User, "u1", {"points": 10})
        notifier.notify.assert_awaited_once_with("users")

    @pytest.mark.asyncio
    async def test_reads_do_not_notify(self):
        notifier = MagicMock()
        notifier.notify = AsyncMock()
        session = _session(_result([]))
        store = ProfileStore(session, notifier, retry_attempts=1, dialect="sqlite")
        await store.select_where(User, level=1)
        notifier.notify.assert_not_awaited()

    def test_rejects_unknown_dialect(self):
        with pytest.raises(ValueError):
            ProfileStore(MagicMock(), dialect="mysql")
