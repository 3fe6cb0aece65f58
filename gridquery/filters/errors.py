from __future__ import annotations

from typing import Any


class FilterError(Exception):
    """Base class for every error raised by the filtering core.

    ``code`` is the stable identifier sent over the wire, ``http_status`` is the
    status the HTTP boundary answers with and ``retryable`` tells the caller
    whether repeating the same request may succeed.
    """

    code = "filter_error"
    http_status = 400
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message, "retryable": self.retryable}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class ValidationError(FilterError):
    """A filter was rejected: unknown column, illegal operator, bad arity or value.

    ``check`` names the failed check: ``column``, ``operator``, ``arity`` or ``value``.
    """

    code = "validation_error"

    def __init__(self, message: str, *, check: str, column_id: str, **details: Any):
        super().__init__(message, check=check, column_id=column_id, **details)
        self.check = check
        self.column_id = column_id


class MalformedFilterError(FilterError):
    code = "malformed_filter"


class UnknownColumnError(FilterError):
    code = "unknown_column"

    def __init__(self, column_id: str):
        super().__init__(f'Unknown column "{column_id}"', column_id=column_id)
        self.column_id = column_id


class UnsupportedOperatorError(FilterError):
    code = "unsupported_operator"

    def __init__(self, data_type: str, operator: str):
        super().__init__(
            f'Operator "{operator}" is not supported for {data_type} columns',
            data_type=data_type,
            operator=operator,
        )
        self.data_type = data_type
        self.operator = operator


class DuplicateColumnError(FilterError):
    code = "duplicate_column"
    http_status = 500

    def __init__(self, column_id: str):
        super().__init__(f'Column "{column_id}" is already registered', column_id=column_id)
        self.column_id = column_id


class RegistryFrozenError(FilterError):
    code = "registry_frozen"
    http_status = 500


class UnknownTableError(FilterError):
    code = "unknown_table"
    http_status = 404

    def __init__(self, table_id: str):
        super().__init__(f'Unknown table "{table_id}"', table_id=table_id)
        self.table_id = table_id


class StoreTransientError(FilterError):
    code = "store_unavailable"
    http_status = 503
    retryable = True


class StoreFatalError(FilterError):
    code = "store_query_failed"
    http_status = 500
