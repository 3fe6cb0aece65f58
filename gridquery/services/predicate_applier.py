from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from time import perf_counter
from typing import Callable

from sqlalchemy import Integer, and_, func, literal, not_, or_, true
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement

from gridquery.filters.columns import MULTI_OPTION_DELIMITER, ColumnRegistry, DataType
from gridquery.filters.errors import ValidationError
from gridquery.filters.model import FilterDetail, FilterSet
from gridquery.filters.operators import Operator, arity_accepts, arity_of, catalog_pairs
from gridquery.filters.pagination import Cursor, build_envelope
from gridquery.schemas.table import PageEnvelope
from gridquery.services.table_store import OrderKey, TableStore

_LOG = logging.getLogger("gridquery.query")

DEFAULT_ORDER_KEY: OrderKey = (("created_at", "desc"), ("id", "desc"))


class _Context:
    __slots__ = ("column", "case_sensitive")

    def __init__(self, column, case_sensitive: bool):
        self.column = column
        self.case_sensitive = case_sensitive

    @property
    def is_timestamp(self) -> bool:
        return _column_python_type(self.column) is datetime

    @property
    def is_date(self) -> bool:
        return _column_python_type(self.column) is date


def _column_python_type(column):
    try:
        return column.property.columns[0].type.python_type
    except Exception:
        return None


class _position(FunctionElement):
    """1-based index of a substring, 0 when absent. Never folds case."""

    type = Integer()
    inherit_cache = True


@compiles(_position)
def _compile_position(element, compiler, **kw):
    return "strpos(%s)" % compiler.process(element.clauses, **kw)


@compiles(_position, "sqlite")
@compiles(_position, "mysql")
def _compile_position_instr(element, compiler, **kw):
    # SQLite LIKE ignores ASCII case, so case-sensitive matching goes through instr.
    return "instr(%s)" % compiler.process(element.clauses, **kw)


# text

def _text_equals(ctx: _Context, values):
    if ctx.case_sensitive:
        return ctx.column == values[0]
    return func.lower(ctx.column) == func.lower(literal(values[0]))


def _text_contains(ctx: _Context, values):
    if ctx.case_sensitive:
        return _position(ctx.column, values[0]) > 0
    return ctx.column.icontains(values[0], autoescape=True)


def _text_starts_with(ctx: _Context, values):
    if ctx.case_sensitive:
        return _position(ctx.column, values[0]) == 1
    return ctx.column.istartswith(values[0], autoescape=True)


def _text_is_empty(ctx: _Context, values):
    return or_(ctx.column.is_(None), ctx.column == "")


def _text_is_not_empty(ctx: _Context, values):
    return and_(ctx.column.is_not(None), ctx.column != "")


# number

def _number_equals(ctx: _Context, values):
    return ctx.column == values[0]


def _number_greater_than(ctx: _Context, values):
    return ctx.column > values[0]


def _number_less_than(ctx: _Context, values):
    return ctx.column < values[0]


def _number_between(ctx: _Context, values):
    return ctx.column.between(values[0], values[1])


# date

def _is_day(value) -> bool:
    return isinstance(value, date) and not isinstance(value, datetime)


def _day_start(value: date) -> datetime:
    return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)


def _as_column_value(ctx: _Context, value):
    if ctx.is_date:
        return value.astimezone(timezone.utc).date() if isinstance(value, datetime) else value
    if _is_day(value):
        return _day_start(value)
    return value.astimezone(timezone.utc)


def _date_equals(ctx: _Context, values):
    value = values[0]
    if ctx.is_timestamp and _is_day(value):
        # A calendar day against a timestamp column covers the whole day.
        start = _day_start(value)
        return and_(ctx.column >= start, ctx.column < start + timedelta(days=1))
    return ctx.column == _as_column_value(ctx, value)


def _date_before(ctx: _Context, values):
    return ctx.column < _as_column_value(ctx, values[0])


def _date_after(ctx: _Context, values):
    value = values[0]
    if ctx.is_timestamp and _is_day(value):
        return ctx.column >= _day_start(value) + timedelta(days=1)
    return ctx.column > _as_column_value(ctx, value)


def _date_between(ctx: _Context, values):
    lower, upper = values
    lower_expr = ctx.column >= _as_column_value(ctx, lower)
    if ctx.is_timestamp and _is_day(upper):
        return and_(lower_expr, ctx.column < _day_start(upper) + timedelta(days=1))
    return and_(lower_expr, ctx.column <= _as_column_value(ctx, upper))


# boolean

def _is_true(ctx: _Context, values):
    return ctx.column.is_(True)


def _is_false(ctx: _Context, values):
    return ctx.column.is_(False)


# option

def _option_is(ctx: _Context, values):
    return ctx.column == values[0]


def _option_is_not(ctx: _Context, values):
    return or_(ctx.column != values[0], ctx.column.is_(None))


def _option_is_any_of(ctx: _Context, values):
    return ctx.column.in_(list(values))


# multiOption

def _token_matches(ctx: _Context, values):
    return [_position(ctx.column, f"{MULTI_OPTION_DELIMITER}{value}{MULTI_OPTION_DELIMITER}") > 0 for value in values]


def _includes_any(ctx: _Context, values):
    return or_(*_token_matches(ctx, values))


def _includes_all(ctx: _Context, values):
    return and_(*_token_matches(ctx, values))


def _excludes(ctx: _Context, values):
    return or_(ctx.column.is_(None), not_(or_(*_token_matches(ctx, values))))


PREDICATE_BUILDERS: dict[tuple[DataType, Operator], Callable] = {
    (DataType.TEXT, Operator.EQUALS): _text_equals,
    (DataType.TEXT, Operator.CONTAINS): _text_contains,
    (DataType.TEXT, Operator.STARTS_WITH): _text_starts_with,
    (DataType.TEXT, Operator.IS_EMPTY): _text_is_empty,
    (DataType.TEXT, Operator.IS_NOT_EMPTY): _text_is_not_empty,
    (DataType.NUMBER, Operator.EQUALS): _number_equals,
    (DataType.NUMBER, Operator.GREATER_THAN): _number_greater_than,
    (DataType.NUMBER, Operator.LESS_THAN): _number_less_than,
    (DataType.NUMBER, Operator.BETWEEN): _number_between,
    (DataType.DATE, Operator.EQUALS): _date_equals,
    (DataType.DATE, Operator.BEFORE): _date_before,
    (DataType.DATE, Operator.AFTER): _date_after,
    (DataType.DATE, Operator.BETWEEN): _date_between,
    (DataType.BOOLEAN, Operator.IS_TRUE): _is_true,
    (DataType.BOOLEAN, Operator.IS_FALSE): _is_false,
    (DataType.OPTION, Operator.IS): _option_is,
    (DataType.OPTION, Operator.IS_NOT): _option_is_not,
    (DataType.OPTION, Operator.IS_ANY_OF): _option_is_any_of,
    (DataType.MULTI_OPTION, Operator.INCLUDES_ANY): _includes_any,
    (DataType.MULTI_OPTION, Operator.INCLUDES_ALL): _includes_all,
    (DataType.MULTI_OPTION, Operator.EXCLUDES): _excludes,
}

if set(PREDICATE_BUILDERS) != catalog_pairs():
    raise RuntimeError("Predicate builders do not match the operator catalog")


def build_column_predicate(store: TableStore, registry: ColumnRegistry, detail: FilterDetail, *, case_sensitive: bool = False):
    column = registry.get(detail.column_id)
    arity = arity_of(column.data_type, detail.operator)
    if not arity_accepts(arity, len(detail.values)):
        raise ValidationError(
            f'Operator "{detail.operator.value}" expects {arity.value} value(s), got {len(detail.values)}',
            check="arity",
            column_id=detail.column_id,
        )
    ctx = _Context(store.resolve(column.accessor), case_sensitive)
    return PREDICATE_BUILDERS[(column.data_type, detail.operator)](ctx, detail.values)


def build_predicate(store: TableStore, registry: ColumnRegistry, filter_set: FilterSet, *, case_sensitive: bool = False):
    """AND of every filter in the set; an empty set matches all rows."""
    predicates = [
        build_column_predicate(store, registry, detail, case_sensitive=case_sensitive) for detail in filter_set
    ]
    if not predicates:
        return true()
    return and_(*predicates)


def project_row(registry: ColumnRegistry, row: dict) -> dict:
    """Re-key a store row by column id, keeping the row identity under ``id``."""
    projected = {"id": row["id"]} if "id" in row else {}
    for column in registry:
        projected[column.id] = row.get(column.accessor)
    return projected


def run_table_query(
    store: TableStore,
    registry: ColumnRegistry,
    filter_set: FilterSet,
    cursor: Cursor,
    *,
    case_sensitive: bool = False,
    order_key: OrderKey = DEFAULT_ORDER_KEY,
) -> PageEnvelope:
    started_at = perf_counter()
    predicate = build_predicate(store, registry, filter_set, case_sensitive=case_sensitive)
    total = store.count(predicate)
    rows = store.find(predicate, offset=cursor.offset, limit=cursor.limit, order_key=order_key)
    envelope = build_envelope([project_row(registry, row) for row in rows], total, cursor)
    _LOG.debug(
        "table query filters=%s total=%s page=%s/%s duration_ms=%.2f",
        ",".join(filter_set.column_ids()) or "-",
        total,
        cursor.page_index,
        envelope.pagination.page_count,
        (perf_counter() - started_at) * 1000.0,
    )
    return envelope
