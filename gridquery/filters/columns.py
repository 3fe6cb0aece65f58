from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from gridquery.filters.errors import DuplicateColumnError, RegistryFrozenError, UnknownColumnError

# multiOption values are stored as one string: "|express|gift|".
MULTI_OPTION_DELIMITER = "|"


class DataType(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    OPTION = "option"
    MULTI_OPTION = "multiOption"


@dataclass(frozen=True)
class ColumnDefinition:
    id: str
    data_type: DataType
    accessor: str
    label_key: str = ""
    options: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Column id must be a non-empty string")
        if "[" in self.id or "]" in self.id:
            raise ValueError(f"Column id must not contain brackets: {self.id!r}")
        # Accept plain strings for convenience but always store the enum member.
        object.__setattr__(self, "data_type", DataType(self.data_type))
        object.__setattr__(self, "options", tuple(self.options))
        if not self.accessor:
            object.__setattr__(self, "accessor", self.id)
        if not self.label_key:
            object.__setattr__(self, "label_key", f"column.{self.id}")

    @property
    def has_options(self) -> bool:
        return self.data_type in {DataType.OPTION, DataType.MULTI_OPTION} and bool(self.options)


class ColumnRegistry:
    """Filterable columns of one table, keyed by id in registration order.

    Registration is only possible until :meth:`freeze` is called; the registry
    handed to the filter model, serializer and applier is always frozen.
    """

    def __init__(self):
        self._columns: dict[str, ColumnDefinition] = {}
        self._frozen = False

    @classmethod
    def from_columns(cls, columns: Iterable[ColumnDefinition]) -> "ColumnRegistry":
        registry = cls()
        for column in columns:
            registry.register(column)
        registry.freeze()
        return registry

    def register(self, column: ColumnDefinition) -> ColumnDefinition:
        if self._frozen:
            raise RegistryFrozenError(f'Cannot register column "{column.id}": registry is frozen')
        if column.id in self._columns:
            raise DuplicateColumnError(column.id)
        self._columns[column.id] = column
        return column

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, column_id: str) -> ColumnDefinition:
        column = self._columns.get(column_id)
        if column is None:
            raise UnknownColumnError(column_id)
        return column

    def ids(self) -> tuple[str, ...]:
        return tuple(self._columns)

    def __contains__(self, column_id: object) -> bool:
        return column_id in self._columns

    def __iter__(self) -> Iterator[ColumnDefinition]:
        return iter(tuple(self._columns.values()))

    def __len__(self) -> int:
        return len(self._columns)


def pack_multi_option(values: Iterable[str]) -> str:
    tokens = [str(value) for value in values if str(value)]
    if not tokens:
        return ""
    return f"{MULTI_OPTION_DELIMITER}{MULTI_OPTION_DELIMITER.join(tokens)}{MULTI_OPTION_DELIMITER}"


def unpack_multi_option(raw: str | None) -> list[str]:
    return [token for token in str(raw or "").split(MULTI_OPTION_DELIMITER) if token]
