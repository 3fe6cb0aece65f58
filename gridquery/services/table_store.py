from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Protocol, Sequence

from sqlalchemy import asc, desc, func, select, text
from sqlalchemy.exc import (
    ArgumentError,
    CompileError,
    DataError,
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Session

from gridquery.filters.columns import unpack_multi_option
from gridquery.filters.errors import StoreFatalError, StoreTransientError

_LOG = logging.getLogger("gridquery.store")

OrderKey = Sequence[tuple[str, str]]

# SQLite reports schema mistakes as OperationalError; those are not worth retrying.
_SQLITE_FATAL_MARKERS = ("no such table", "no such column", "syntax error", "ambiguous column")


class TableStore(Protocol):
    def resolve(self, accessor: str) -> Any:
        ...

    def count(self, predicate) -> int:
        ...

    def find(self, predicate, *, offset: int, limit: int, order_key: OrderKey) -> list[dict[str, Any]]:
        ...


def _serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def classify_store_error(exc: BaseException) -> StoreTransientError | StoreFatalError:
    if isinstance(exc, (PoolTimeoutError, TimeoutError, DisconnectionError)):
        return StoreTransientError("Data store timed out or is unreachable", reason=type(exc).__name__)
    if isinstance(exc, (ProgrammingError, CompileError, ArgumentError, DataError)):
        return StoreFatalError("Data store rejected the generated query", reason=type(exc).__name__)
    if isinstance(exc, OperationalError):
        message = str(getattr(exc, "orig", exc) or "").lower()
        if any(marker in message for marker in _SQLITE_FATAL_MARKERS):
            return StoreFatalError("Data store rejected the generated query", reason=type(exc).__name__)
        return StoreTransientError("Data store is temporarily unavailable", reason=type(exc).__name__)
    if isinstance(exc, InterfaceError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
        return StoreTransientError("Data store connection was lost", reason=type(exc).__name__)
    return StoreFatalError("Data store query failed", reason=type(exc).__name__)


class SqlAlchemyTableStore:
    """TableStore over one mapped model and a caller-owned session.

    ``timeout_seconds`` bounds each statement on PostgreSQL through
    ``statement_timeout``; on SQLite the driver's connect timeout applies.
    ``list_fields`` are delimited multiOption columns returned as lists.
    """

    def __init__(
        self,
        session: Session,
        model: type,
        *,
        timeout_seconds: float | None = None,
        list_fields: Iterable[str] = (),
    ):
        self.session = session
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.list_fields = frozenset(list_fields)
        self._timeout_applied = False

    def resolve(self, accessor: str):
        attr = getattr(self.model, accessor, None)
        if attr is None or accessor not in sa_inspect(self.model).columns:
            raise StoreFatalError(
                f'Accessor "{accessor}" is not a column of {self.model.__name__}',
                accessor=accessor,
            )
        return attr

    def _apply_timeout(self) -> None:
        if self._timeout_applied or not self.timeout_seconds:
            return
        bind = self.session.get_bind()
        if bind.dialect.name == "postgresql":
            timeout_ms = max(int(self.timeout_seconds * 1000), 1)
            self.session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
        self._timeout_applied = True

    def _run(self, operation):
        try:
            self._apply_timeout()
            return operation()
        except (SQLAlchemyError, TimeoutError) as exc:
            error = classify_store_error(exc)
            try:
                self.session.rollback()
            except SQLAlchemyError:
                _LOG.debug("store_rollback_failed", exc_info=True)
            self._timeout_applied = False
            if isinstance(error, StoreFatalError):
                _LOG.error("store query failed model=%s", self.model.__name__, exc_info=exc)
            else:
                _LOG.warning("store query transient failure model=%s: %s", self.model.__name__, exc)
            raise error from exc

    def count(self, predicate) -> int:
        stmt = select(func.count()).select_from(self.model).where(predicate)
        return int(self._run(lambda: self.session.execute(stmt).scalar_one()))

    def find(self, predicate, *, offset: int, limit: int, order_key: OrderKey) -> list[dict[str, Any]]:
        stmt = select(self.model).where(predicate)
        for accessor, direction in order_key:
            col = self.resolve(accessor)
            stmt = stmt.order_by(asc(col) if direction == "asc" else desc(col))
        stmt = stmt.offset(offset).limit(limit)
        rows = self._run(lambda: self.session.execute(stmt).scalars().all())
        return [self._row_to_dict(row) for row in rows]

    def _row_to_dict(self, row: Any) -> dict[str, Any]:
        mapper = sa_inspect(type(row))
        result: dict[str, Any] = {}
        for column in mapper.columns:
            value = getattr(row, column.key)
            if column.key in self.list_fields:
                result[column.key] = unpack_multi_option(value)
            else:
                result[column.key] = _serialize_value(value)
        return result
