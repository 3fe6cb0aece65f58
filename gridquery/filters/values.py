from __future__ import annotations

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from gridquery.filters.columns import MULTI_OPTION_DELIMITER, ColumnDefinition, DataType
from gridquery.filters.errors import ValidationError

_INT_RE = re.compile(r"^[+-]?\d+$")


def _bad_filter_value(column: ColumnDefinition, kind: str, value) -> ValidationError:
    return ValidationError(
        f'Invalid filter value for column "{column.id}" ({kind}): {value!r}',
        check="value",
        column_id=column.id,
        value=str(value),
    )


def _coerce_text(column: ColumnDefinition, value) -> str:
    if isinstance(value, (bool, bytes)) or value is None:
        raise _bad_filter_value(column, "text", value)
    text = str(value)
    if not text.strip():
        raise _bad_filter_value(column, "text", value)
    return text


def _coerce_number(column: ColumnDefinition, value) -> int | Decimal:
    if isinstance(value, bool) or value is None:
        raise _bad_filter_value(column, "number", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # repr keeps the shortest round-tripping form, so 0.1 becomes Decimal("0.1").
        parsed = Decimal(repr(value))
    elif isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            raise _bad_filter_value(column, "number", value)
        if _INT_RE.match(text):
            return int(text)
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            raise _bad_filter_value(column, "number", value)
    if not parsed.is_finite():
        raise _bad_filter_value(column, "number", value)
    if parsed == parsed.to_integral_value() and parsed.as_tuple().exponent >= 0:
        return int(parsed)
    return parsed


def _coerce_date(column: ColumnDefinition, value) -> date | datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value or "").strip()
        if not text:
            raise _bad_filter_value(column, "date", value)
        try:
            if "T" not in text and " " not in text and len(text) == 10:
                return date.fromisoformat(text)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise _bad_filter_value(column, "date", value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_option(column: ColumnDefinition, value) -> str:
    text = _coerce_text(column, value)
    if column.options and text not in column.options:
        raise ValidationError(
            f'Value "{text}" is not an option of column "{column.id}"',
            check="value",
            column_id=column.id,
            value=text,
            options=list(column.options),
        )
    return text


def _coerce_token(column: ColumnDefinition, value) -> str:
    text = _coerce_option(column, value)
    if MULTI_OPTION_DELIMITER in text:
        raise ValidationError(
            f'Value "{text}" contains the reserved character "{MULTI_OPTION_DELIMITER}"',
            check="value",
            column_id=column.id,
            value=text,
        )
    return text


def _coerce_boolean(column: ColumnDefinition, value):
    # Boolean operators take no values; arity checks reject any value first.
    raise _bad_filter_value(column, "boolean", value)


_COERCERS = {
    DataType.TEXT: _coerce_text,
    DataType.NUMBER: _coerce_number,
    DataType.DATE: _coerce_date,
    DataType.BOOLEAN: _coerce_boolean,
    DataType.OPTION: _coerce_option,
    DataType.MULTI_OPTION: _coerce_token,
}

_missing_types = set(DataType) - set(_COERCERS)
if _missing_types:
    raise RuntimeError(f"No value coercer for: {sorted(t.value for t in _missing_types)}")


def _range_key(value):
    # date-only bounds compare as the start of that day.
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)
    return value


def coerce_values(column: ColumnDefinition, values) -> tuple:
    coerce = _COERCERS[column.data_type]
    return tuple(coerce(column, value) for value in values)


def check_range(column: ColumnDefinition, values: tuple) -> None:
    lower, upper = values
    if _range_key(lower) > _range_key(upper):
        raise ValidationError(
            f'Range for column "{column.id}" has its lower bound above its upper bound',
            check="value",
            column_id=column.id,
        )


def encode_value(value) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)
