from __future__ import annotations

import logging
from typing import Any

import httpx

from gridquery.filters import errors as filter_errors
from gridquery.filters.columns import ColumnDefinition, ColumnRegistry, DataType
from gridquery.filters.errors import FilterError, StoreTransientError
from gridquery.filters.model import FilterModel, FilterSet
from gridquery.filters.pagination import Cursor
from gridquery.filters.serializer import encode
from gridquery.schemas.table import PageEnvelope, TableColumns

logger = logging.getLogger("gridquery.client")

_ERROR_CLASSES: dict[str, type[FilterError]] = {
    cls.code: cls
    for cls in (
        filter_errors.ValidationError,
        filter_errors.MalformedFilterError,
        filter_errors.UnknownColumnError,
        filter_errors.UnsupportedOperatorError,
        filter_errors.DuplicateColumnError,
        filter_errors.RegistryFrozenError,
        filter_errors.UnknownTableError,
        filter_errors.StoreTransientError,
        filter_errors.StoreFatalError,
    )
}


def error_from_payload(payload: dict[str, Any]) -> FilterError:
    """Rebuild the server-side error class from an error envelope body."""
    cls = _ERROR_CLASSES.get(str(payload.get("code") or ""), FilterError)
    message = str(payload.get("message") or "Request failed")
    details = dict(payload.get("details") or {})
    error = cls.__new__(cls)
    FilterError.__init__(error, message, **details)
    for key, value in details.items():
        setattr(error, key, value)
    return error


class TableClient:
    """HTTP consumer of the table endpoints.

    Pass ``http`` to reuse an existing ``httpx.Client`` (the test suite hands in
    FastAPI's ``TestClient``); otherwise one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        http: httpx.Client | None = None,
        timeout: float = 10.0,
        api_prefix: str = "/api/tables",
    ):
        self._owns_http = http is None
        self.http = http if http is not None else httpx.Client(base_url=base_url, timeout=timeout)
        self.api_prefix = api_prefix.rstrip("/")

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "TableClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get(self, path: str, params=None) -> dict[str, Any]:
        try:
            response = self.http.get(f"{self.api_prefix}{path}", params=params)
        except httpx.TimeoutException as exc:
            raise StoreTransientError("Table service timed out", reason=type(exc).__name__) from exc
        except httpx.TransportError as exc:
            raise StoreTransientError("Table service is unreachable", reason=type(exc).__name__) from exc
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.is_success and isinstance(body, dict):
            return body
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = error_from_payload(body["error"])
            logger.info("table request failed status=%s code=%s", response.status_code, error.code)
            raise error
        if response.status_code >= 500:
            raise StoreTransientError(f"Table service answered {response.status_code}", status=response.status_code)
        raise FilterError(f"Table service answered {response.status_code}", status=response.status_code)

    def list_tables(self) -> list[str]:
        return list(self._get("")["tables"])

    def fetch_columns(self, table_id: str, *, locale: str | None = None) -> ColumnRegistry:
        params = {"locale": locale} if locale else None
        meta = TableColumns.model_validate(self._get(f"/{table_id}/columns", params))
        return ColumnRegistry.from_columns(
            ColumnDefinition(
                id=column.id,
                data_type=DataType(column.data_type),
                # Accessors are server-side; the client only needs a placeholder.
                accessor=column.id,
                label_key=column.label,
                options=tuple(column.options),
            )
            for column in meta.columns
        )

    def new_filter_model(self, table_id: str) -> FilterModel:
        return FilterModel(self.fetch_columns(table_id))

    def fetch_page(
        self,
        table_id: str,
        filters: FilterSet | FilterModel | None = None,
        cursor: Cursor | None = None,
    ) -> PageEnvelope:
        if isinstance(filters, FilterModel):
            filters = filters.snapshot()
        params = encode(filters or FilterSet(), cursor or Cursor())
        return PageEnvelope.model_validate(self._get(f"/{table_id}/rows", params))
