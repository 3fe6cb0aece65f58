from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from gridquery.schemas.table import PageEnvelope, PaginationMeta


@dataclass(frozen=True)
class Cursor:
    page_index: int = 0
    page_size: int = 20

    def __post_init__(self):
        if isinstance(self.page_index, bool) or not isinstance(self.page_index, int) or self.page_index < 0:
            raise ValueError(f"page_index must be an integer >= 0, got {self.page_index!r}")
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size <= 0:
            raise ValueError(f"page_size must be an integer > 0, got {self.page_size!r}")

    @property
    def offset(self) -> int:
        return self.page_index * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def page_count(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return -(-total // limit)


def build_envelope(rows: Sequence[dict[str, Any]], total: int, cursor: Cursor) -> PageEnvelope:
    """Wrap one page of rows; every pagination field is derived here, never taken from input."""
    rows = list(rows)[: cursor.limit]
    offset = cursor.offset
    return PageEnvelope(
        success=True,
        total=total,
        data=rows,
        pagination=PaginationMeta(
            limit=cursor.limit,
            offset=offset,
            has_more=offset + len(rows) < total,
            page_count=page_count(total, cursor.limit),
        ),
    )
