"""Profile store client: the engine's only path to persisted state.

Exposes the primitives the progression engine relies on (point read,
upsert by explicit conflict key, insert, update by primary key, bulk read
by equality predicates) as single statements that commit on their own.
There are no multi-statement transactions: a sequence of calls behaves
like a sequence of requests against a remote store.

Transient failures are retried here with exponential backoff; the engine
itself never retries. Whatever is still failing after the last attempt
surfaces as StoreUnavailable.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Table, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ecoquest.config import Settings
from ecoquest.errors import StoreUnavailable
from ecoquest.realtime.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

Record = dict[str, Any]

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_TRANSIENT_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
    asyncio.TimeoutError,
)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, StoreUnavailable) and exc.transient


def _table(model: Any) -> Table:
    return model.__table__ if hasattr(model, "__table__") else model


def _primary_key(table: Table):
    columns = list(table.primary_key.columns)
    if len(columns) != 1:
        msg = f"{table.name} does not have a single-column primary key"
        raise ValueError(msg)
    return columns[0]


class ProfileStore:
    """Async client over one session. Create one per request or task."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: ChangeNotifier | None = None,
        *,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 10.0,
        dialect: str | None = None,
    ) -> None:
        self.session = session
        self.notifier = notifier or ChangeNotifier(None)
        self.retry_attempts = max(1, retry_attempts)
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.dialect = dialect or session.bind.dialect.name
        if self.dialect not in _DIALECT_INSERTS:
            msg = f"Unsupported store dialect: {self.dialect}"
            raise ValueError(msg)

    @classmethod
    def from_settings(
        cls,
        session: AsyncSession,
        settings: Settings,
        notifier: ChangeNotifier | None = None,
    ) -> ProfileStore:
        return cls(
            session,
            notifier,
            retry_attempts=settings.store_retry_attempts,
            retry_base_delay=settings.store_retry_base_delay_seconds,
            retry_max_delay=settings.store_retry_max_delay_seconds,
        )

    # ── Reads ──

    async def get(self, model: Any, key: Any) -> Record | None:
        """Point read by primary key. None means "not found"."""
        table = _table(model)
        stmt = select(table).where(_primary_key(table) == key)
        rows = await self._execute(stmt)
        return rows[0] if rows else None

    async def select_where(
        self,
        model: Any,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        **equals: Any,
    ) -> list[Record]:
        """Bulk read filtered by column equality."""
        table = _table(model)
        stmt = select(table).where(*(table.c[name] == value for name, value in equals.items()))
        if order_by is not None:
            column = table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._execute(stmt)

    async def get_one_where(self, model: Any, **equals: Any) -> Record | None:
        rows = await self.select_where(model, limit=1, **equals)
        return rows[0] if rows else None

    # ── Writes ──

    async def insert(
        self,
        model: Any,
        values: Mapping[str, Any],
        *,
        ignore_conflict_on: Sequence[str] | None = None,
    ) -> Record | None:
        """Insert one row. With ``ignore_conflict_on`` an existing row is left untouched and None is returned."""
        table = _table(model)
        stmt = _DIALECT_INSERTS[self.dialect](table).values(**values)
        if ignore_conflict_on:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(ignore_conflict_on))
        rows = await self._execute(stmt.returning(*table.c), write=True, table=table)
        return rows[0] if rows else None

    async def upsert(
        self,
        model: Any,
        values: Mapping[str, Any],
        conflict_keys: Sequence[str],
    ) -> Record:
        """Insert or overwrite the row addressed by ``conflict_keys``. Last write wins."""
        table = _table(model)
        values = dict(values)
        if "updated_at" in table.c and "updated_at" not in values:
            values["updated_at"] = datetime.now(timezone.utc)

        stmt = _DIALECT_INSERTS[self.dialect](table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_keys),
            set_={name: stmt.excluded[name] for name in values if name not in conflict_keys},
        )
        rows = await self._execute(stmt.returning(*table.c), write=True, table=table)
        return rows[0]

    async def update(self, model: Any, key: Any, values: Mapping[str, Any]) -> Record | None:
        """Overwrite fields of one row by primary key. None if the row does not exist."""
        table = _table(model)
        stmt = (
            update(table)
            .where(_primary_key(table) == key)
            .values(**values)
            .returning(*table.c)
        )
        rows = await self._execute(stmt, write=True, table=table)
        return rows[0] if rows else None

    # ── Execution ──

    async def _execute(
        self,
        stmt: Executable,
        *,
        write: bool = False,
        table: Table | None = None,
    ) -> list[Record]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_base_delay, max=self.retry_max_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        rows: list[Record] = []
        async for attempt in retrying:
            with attempt:
                rows = await self._execute_once(stmt)

        if write and table is not None:
            await self.notifier.notify(table.name)
        return rows

    async def _execute_once(self, stmt: Executable) -> list[Record]:
        try:
            result = await self.session.execute(stmt)
            rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
            await self.session.commit()
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            await self.session.rollback()
            transient = isinstance(exc, _TRANSIENT_ERRORS)
            logger.warning("Store statement failed (transient=%s): %s", transient, exc)
            raise StoreUnavailable(f"{type(exc).__name__}: {exc}", transient=transient) from exc
        return rows
