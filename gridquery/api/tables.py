from fastapi import APIRouter, Depends, Request

from gridquery.core.config import settings
from gridquery.core.deps import get_labels, get_locale, get_table_definition, get_table_store
from gridquery.filters.serializer import decode
from gridquery.schemas.table import PageEnvelope, TableColumns
from gridquery.services.labels import LabelLookup, describe_columns
from gridquery.services.predicate_applier import run_table_query
from gridquery.services.table_store import TableStore
from gridquery.tables.catalog import TABLES, TableDefinition

router = APIRouter()


@router.get("")
def list_tables():
    return {"success": True, "tables": sorted(TABLES)}


@router.get("/{table_id}/columns", response_model=TableColumns, response_model_by_alias=True)
def get_columns(
    table: TableDefinition = Depends(get_table_definition),
    labels: LabelLookup = Depends(get_labels),
    locale: str = Depends(get_locale),
):
    return describe_columns(table.id, table.columns, labels, locale)


@router.get("/{table_id}/rows", response_model=PageEnvelope, response_model_by_alias=True)
def get_rows(
    request: Request,
    table: TableDefinition = Depends(get_table_definition),
    store: TableStore = Depends(get_table_store),
):
    filter_set, cursor = decode(
        request.query_params.multi_items(),
        table.columns,
        default_page_size=settings.PAGE_SIZE_DEFAULT,
        max_page_size=settings.PAGE_SIZE_MAX,
    )
    return run_table_query(
        store,
        table.columns,
        filter_set,
        cursor,
        case_sensitive=settings.TEXT_MATCH_CASE_SENSITIVE,
    )
