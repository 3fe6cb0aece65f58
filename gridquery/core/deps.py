from fastapi import Depends, Query
from sqlalchemy.orm import Session

from gridquery.core.config import settings
from gridquery.db.session import get_db
from gridquery.services.labels import LabelLookup, default_labels
from gridquery.tables.catalog import TableDefinition, get_table


def get_table_definition(table_id: str) -> TableDefinition:
    return get_table(table_id)


def get_labels() -> LabelLookup:
    return default_labels


def get_locale(locale: str | None = Query(default=None, max_length=16)) -> str:
    return (locale or settings.DEFAULT_LOCALE).strip().lower()


def get_table_store(table: TableDefinition = Depends(get_table_definition), db: Session = Depends(get_db)):
    return table.store(db, timeout_seconds=settings.STORE_QUERY_TIMEOUT_SECONDS)
