from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from gridquery.filters.columns import ColumnRegistry, DataType
from gridquery.filters.errors import UnknownTableError
from gridquery.services.table_store import SqlAlchemyTableStore
from gridquery.tables.llm_events import LLM_EVENT_COLUMNS, LLM_EVENTS_MODEL
from gridquery.tables.orders import ORDER_COLUMNS, ORDERS_MODEL


@dataclass(frozen=True)
class TableDefinition:
    id: str
    model: type
    columns: ColumnRegistry

    @property
    def list_fields(self) -> tuple[str, ...]:
        return tuple(column.accessor for column in self.columns if column.data_type is DataType.MULTI_OPTION)

    def store(self, db: Session, *, timeout_seconds: float | None = None) -> SqlAlchemyTableStore:
        return SqlAlchemyTableStore(db, self.model, timeout_seconds=timeout_seconds, list_fields=self.list_fields)


TABLES: dict[str, TableDefinition] = {
    table.id: table
    for table in (
        TableDefinition("orders", ORDERS_MODEL, ORDER_COLUMNS),
        TableDefinition("llm_events", LLM_EVENTS_MODEL, LLM_EVENT_COLUMNS),
    )
}


def normalize_table_id(table_id: str) -> str:
    raw = (table_id or "").strip().replace("-", "_")
    if not raw:
        return ""
    chars: list[str] = []
    for index, ch in enumerate(raw):
        if ch.isupper() and index > 0 and raw[index - 1].isalnum() and raw[index - 1] != "_":
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


def get_table(table_id: str) -> TableDefinition:
    table = TABLES.get(normalize_table_id(table_id))
    if table is None:
        raise UnknownTableError(table_id)
    return table
