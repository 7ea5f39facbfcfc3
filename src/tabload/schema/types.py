"""
Table schema types shared by inference, table definition and batch insertion.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator, Optional, Tuple

import pyarrow as pa
from dateutil import parser as date_parser

# Optional leading minus followed by ASCII digits
INTEGER_PATTERN = re.compile(r'-?[0-9]+')


class ColumnType(Enum):
    INTEGER = 'integer'
    DATETIME = 'datetime'
    STRING = 'string'

    def to_arrow(self) -> pa.DataType:
        """Arrow type used to carry values of this column type"""
        return _ARROW_TYPES[self]

    def parse_value(self, value: Optional[str]) -> Any:
        """
        Convert a raw text value to the Python value stored for this type.

        Empty INTEGER/DATETIME values become None. Date/times with an offset
        are normalized to naive UTC.

        Raises:
            ValueError: If the value does not conform to the column type
        """
        if self is ColumnType.STRING:
            return value
        if value is None or not value.strip():
            return None
        if self is ColumnType.INTEGER:
            value = value.strip()
            if INTEGER_PATTERN.fullmatch(value) is None:
                raise ValueError(f'Not an integer: {value!r}')
            return int(value)

        try:
            parsed: datetime = date_parser.parse(value)
        except OverflowError as e:
            raise ValueError(f'Date/time out of range: {value!r}') from e
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed


_ARROW_TYPES = {
    ColumnType.INTEGER: pa.int64(),
    ColumnType.DATETIME: pa.timestamp('us'),
    ColumnType.STRING: pa.string(),
}


@dataclass(frozen=True)
class ColumnDescriptor:
    """Inferred name and type of one table column"""

    name: str
    type: ColumnType


@dataclass(frozen=True)
class TableSchema:
    """Ordered, immutable list of column descriptors"""

    columns: Tuple[ColumnDescriptor, ...]

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def type_of(self, name: str) -> ColumnType:
        for column in self.columns:
            if column.name == name:
                return column.type
        raise KeyError(name)

    def to_arrow(self) -> pa.Schema:
        """Convert to an Arrow schema with every field nullable."""
        return pa.schema([pa.field(column.name, column.type.to_arrow(), nullable=True) for column in self.columns])

    def __str__(self) -> str:
        return ', '.join(f'{column.name}: {column.type.value}' for column in self.columns)
