from __future__ import annotations

import enum

from gridquery.filters.columns import DataType
from gridquery.filters.errors import UnsupportedOperatorError


class Operator(str, enum.Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    BETWEEN = "between"
    BEFORE = "before"
    AFTER = "after"
    IS_TRUE = "isTrue"
    IS_FALSE = "isFalse"
    IS = "is"
    IS_NOT = "isNot"
    IS_ANY_OF = "isAnyOf"
    INCLUDES_ANY = "includesAny"
    INCLUDES_ALL = "includesAll"
    EXCLUDES = "excludes"


class Arity(str, enum.Enum):
    NONE = "none"
    SINGLE = "single"
    PAIR = "pair"
    LIST = "list"


# Ordered: the first operator of each type is the default one offered to users.
OPERATOR_CATALOG: dict[DataType, tuple[tuple[Operator, Arity], ...]] = {
    DataType.TEXT: (
        (Operator.EQUALS, Arity.SINGLE),
        (Operator.CONTAINS, Arity.SINGLE),
        (Operator.STARTS_WITH, Arity.SINGLE),
        (Operator.IS_EMPTY, Arity.NONE),
        (Operator.IS_NOT_EMPTY, Arity.NONE),
    ),
    DataType.NUMBER: (
        (Operator.EQUALS, Arity.SINGLE),
        (Operator.GREATER_THAN, Arity.SINGLE),
        (Operator.LESS_THAN, Arity.SINGLE),
        (Operator.BETWEEN, Arity.PAIR),
    ),
    DataType.DATE: (
        (Operator.EQUALS, Arity.SINGLE),
        (Operator.BEFORE, Arity.SINGLE),
        (Operator.AFTER, Arity.SINGLE),
        (Operator.BETWEEN, Arity.PAIR),
    ),
    DataType.BOOLEAN: (
        (Operator.IS_TRUE, Arity.NONE),
        (Operator.IS_FALSE, Arity.NONE),
    ),
    DataType.OPTION: (
        (Operator.IS, Arity.SINGLE),
        (Operator.IS_NOT, Arity.SINGLE),
        (Operator.IS_ANY_OF, Arity.LIST),
    ),
    DataType.MULTI_OPTION: (
        (Operator.INCLUDES_ANY, Arity.LIST),
        (Operator.INCLUDES_ALL, Arity.LIST),
        (Operator.EXCLUDES, Arity.LIST),
    ),
}

_ARITIES: dict[tuple[DataType, Operator], Arity] = {
    (data_type, operator): arity
    for data_type, entries in OPERATOR_CATALOG.items()
    for operator, arity in entries
}

_missing_types = set(DataType) - set(OPERATOR_CATALOG)
if _missing_types:
    raise RuntimeError(f"Operator catalog has no entry for: {sorted(t.value for t in _missing_types)}")


def operators_for(data_type: DataType | str) -> tuple[Operator, ...]:
    return tuple(operator for operator, _ in OPERATOR_CATALOG[DataType(data_type)])


def parse_operator(data_type: DataType | str, raw) -> Operator:
    """Return the catalog operator named ``raw`` for ``data_type``."""
    data_type = DataType(data_type)
    try:
        operator = Operator(raw)
    except ValueError:
        raise UnsupportedOperatorError(data_type.value, str(raw))
    if (data_type, operator) not in _ARITIES:
        raise UnsupportedOperatorError(data_type.value, operator.value)
    return operator


def arity_of(data_type: DataType | str, operator: Operator | str) -> Arity:
    data_type = DataType(data_type)
    return _ARITIES[(data_type, parse_operator(data_type, operator))]


def arity_accepts(arity: Arity, count: int) -> bool:
    if arity is Arity.NONE:
        return count == 0
    if arity is Arity.SINGLE:
        return count == 1
    if arity is Arity.PAIR:
        return count == 2
    return count >= 1


def catalog_pairs() -> frozenset[tuple[DataType, Operator]]:
    return frozenset(_ARITIES)
