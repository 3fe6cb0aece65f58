"""Transport encoding of a filter set and cursor as flat query parameters.

One filter on column ``status`` becomes::

    filter[status][op]=isAnyOf
    filter[status][v]=pending
    filter[status][v]=shipped

followed by ``pageIndex`` and ``pageSize``. Parameter order is preserved in
both directions, so groups decode in the order they were encoded.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Iterable, Mapping, Sequence, Union

from gridquery.filters.columns import ColumnRegistry
from gridquery.filters.errors import MalformedFilterError, ValidationError
from gridquery.filters.model import FilterSet, build_filter_detail
from gridquery.filters.pagination import Cursor
from gridquery.filters.values import encode_value

_LOG = logging.getLogger("gridquery.query")

FILTER_PARAM_PREFIX = "filter"
PAGE_INDEX_PARAM = "pageIndex"
PAGE_SIZE_PARAM = "pageSize"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_FILTER_KEY_RE = re.compile(r"^filter\[(?P<column>[^\[\]]+)\]\[(?P<part>[^\[\]]*)\]$")
_INT_RE = re.compile(r"^\d+$")

RawParams = Union[Mapping[str, Union[str, Sequence[str]]], Iterable[tuple[str, str]]]


def filter_param(column_id: str, part: str) -> str:
    return f"{FILTER_PARAM_PREFIX}[{column_id}][{part}]"


def encode(filter_set: FilterSet, cursor: Cursor) -> list[tuple[str, str]]:
    params: list[tuple[str, str]] = []
    for detail in filter_set:
        params.append((filter_param(detail.column_id, "op"), detail.operator.value))
        for value in detail.values:
            params.append((filter_param(detail.column_id, "v"), encode_value(value)))
    params.append((PAGE_INDEX_PARAM, str(cursor.page_index)))
    params.append((PAGE_SIZE_PARAM, str(cursor.page_size)))
    return params


def _iter_pairs(raw: RawParams) -> list[tuple[str, str]]:
    if isinstance(raw, Mapping):
        pairs: list[tuple[str, str]] = []
        for key, value in raw.items():
            if isinstance(value, (list, tuple)):
                pairs.extend((str(key), str(item)) for item in value)
            else:
                pairs.append((str(key), str(value)))
        return pairs
    return [(str(key), str(value)) for key, value in raw]


def _parse_int_param(name: str, value: str | None) -> int | None:
    if value is None:
        return None
    text = value.strip()
    if not _INT_RE.match(text):
        raise MalformedFilterError(f'Parameter "{name}" must be a non-negative integer', param=name, value=value)
    return int(text)


def _decode_cursor(page_index: str | None, page_size: str | None, *, default_page_size: int, max_page_size: int) -> Cursor:
    index = _parse_int_param(PAGE_INDEX_PARAM, page_index)
    size = _parse_int_param(PAGE_SIZE_PARAM, page_size)
    if size is None:
        size = default_page_size
    if size == 0:
        raise MalformedFilterError(f'Parameter "{PAGE_SIZE_PARAM}" must be greater than zero', param=PAGE_SIZE_PARAM)
    if size > max_page_size:
        _LOG.debug("page size %s clamped to %s", size, max_page_size)
        size = max_page_size
    return Cursor(page_index=index or 0, page_size=size)


def decode(
    raw: RawParams,
    registry: ColumnRegistry,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> tuple[FilterSet, Cursor]:
    """Parse transport parameters back into a validated filter set and cursor.

    The whole request is rejected with :class:`MalformedFilterError` on the first
    problem; a partially decoded filter set is never returned.
    """
    groups: OrderedDict[str, dict] = OrderedDict()
    page_index: str | None = None
    page_size: str | None = None

    for key, value in _iter_pairs(raw):
        if key == PAGE_INDEX_PARAM:
            if page_index is not None:
                raise MalformedFilterError(f'Parameter "{key}" given more than once', param=key)
            page_index = value
            continue
        if key == PAGE_SIZE_PARAM:
            if page_size is not None:
                raise MalformedFilterError(f'Parameter "{key}" given more than once', param=key)
            page_size = value
            continue
        if not key.startswith(f"{FILTER_PARAM_PREFIX}["):
            continue
        match = _FILTER_KEY_RE.match(key)
        if match is None or match.group("part") not in {"op", "v"}:
            raise MalformedFilterError(f'Unrecognized filter parameter "{key}"', param=key)
        group = groups.setdefault(match.group("column"), {"op": None, "values": []})
        if match.group("part") == "op":
            if group["op"] is not None:
                raise MalformedFilterError(f'Operator given more than once for column "{match.group("column")}"', param=key)
            group["op"] = value
        else:
            group["values"].append(value)

    details = []
    for column_id, group in groups.items():
        if column_id not in registry:
            raise MalformedFilterError(f'Unknown filter column "{column_id}"', column_id=column_id, check="column")
        if group["op"] is None:
            raise MalformedFilterError(f'Missing operator for column "{column_id}"', column_id=column_id, check="operator")
        try:
            details.append(build_filter_detail(registry, column_id, group["op"], group["values"]))
        except ValidationError as exc:
            raise MalformedFilterError(exc.message, **exc.details)

    cursor = _decode_cursor(page_index, page_size, default_page_size=default_page_size, max_page_size=max_page_size)
    return FilterSet(details), cursor
