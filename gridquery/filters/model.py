from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from gridquery.filters.columns import ColumnRegistry
from gridquery.filters.errors import UnknownColumnError, UnsupportedOperatorError, ValidationError
from gridquery.filters.operators import Arity, Operator, arity_accepts, arity_of, parse_operator
from gridquery.filters.values import check_range, coerce_values


@dataclass(frozen=True)
class FilterDetail:
    column_id: str
    operator: Operator
    values: tuple = ()


class FilterSet:
    """Immutable, ordered collection of filters with at most one entry per column."""

    __slots__ = ("_details",)

    def __init__(self, details: Iterable[FilterDetail] = ()):
        ordered: OrderedDict[str, FilterDetail] = OrderedDict()
        for detail in details:
            ordered.pop(detail.column_id, None)
            ordered[detail.column_id] = detail
        self._details = tuple(ordered.values())

    def __iter__(self) -> Iterator[FilterDetail]:
        return iter(self._details)

    def __len__(self) -> int:
        return len(self._details)

    def __bool__(self) -> bool:
        return bool(self._details)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterSet):
            return NotImplemented
        return self._details == other._details

    def __hash__(self) -> int:
        return hash(self._details)

    def __repr__(self) -> str:
        return f"FilterSet({list(self._details)!r})"

    def get(self, column_id: str) -> FilterDetail | None:
        for detail in self._details:
            if detail.column_id == column_id:
                return detail
        return None

    def column_ids(self) -> tuple[str, ...]:
        return tuple(detail.column_id for detail in self._details)


def build_filter_detail(
    registry: ColumnRegistry, column_id: str, operator: Operator | str, values: Sequence = ()
) -> FilterDetail:
    """Validate one filter against ``registry`` and return it with normalized values.

    Raises :class:`ValidationError` whose ``check`` is ``column``, ``operator``,
    ``arity`` or ``value``.
    """
    try:
        column = registry.get(column_id)
    except UnknownColumnError as exc:
        raise ValidationError(exc.message, check="column", column_id=column_id)
    try:
        parsed_operator = parse_operator(column.data_type, operator)
    except UnsupportedOperatorError as exc:
        raise ValidationError(exc.message, check="operator", column_id=column_id, operator=str(exc.operator))

    if values is None:
        values = ()
    elif isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise ValidationError(
            f'Values for column "{column_id}" must be a sequence',
            check="arity",
            column_id=column_id,
        )
    arity = arity_of(column.data_type, parsed_operator)
    if not arity_accepts(arity, len(values)):
        raise ValidationError(
            f'Operator "{parsed_operator.value}" expects {arity.value} value(s), got {len(values)}',
            check="arity",
            column_id=column_id,
            operator=parsed_operator.value,
            arity=arity.value,
        )
    normalized = coerce_values(column, values)
    if arity is Arity.PAIR:
        check_range(column, normalized)
    return FilterDetail(column_id=column.id, operator=parsed_operator, values=normalized)


class FilterModel:
    """Active filters of one table view.

    Owned by a single view and never shared, so there is no locking. Every
    mutation either fully applies or raises and leaves the model untouched.
    """

    def __init__(self, registry: ColumnRegistry):
        self.registry = registry
        self._filters: OrderedDict[str, FilterDetail] = OrderedDict()

    def set_filter(self, column_id: str, operator: Operator | str, values: Sequence = ()) -> FilterSet:
        detail = build_filter_detail(self.registry, column_id, operator, values)
        self._filters.pop(detail.column_id, None)
        self._filters[detail.column_id] = detail
        return self.snapshot()

    def remove_filter(self, column_id: str) -> FilterSet:
        self._filters.pop(column_id, None)
        return self.snapshot()

    def clear_all(self) -> FilterSet:
        self._filters.clear()
        return self.snapshot()

    def snapshot(self) -> FilterSet:
        return FilterSet(self._filters.values())

    def load(self, filter_set: FilterSet) -> FilterSet:
        """Replace the current filters with an already validated set (e.g. a decoded URL)."""
        self._filters = OrderedDict((detail.column_id, detail) for detail in filter_set)
        return self.snapshot()

    def __len__(self) -> int:
        return len(self._filters)
