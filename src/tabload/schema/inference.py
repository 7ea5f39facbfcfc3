"""
Single-sample type inference for delimited text sources.

Each column's type is decided once, from the value in the first data row,
and is never revisited for the rest of the load. Later rows are not read.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from dateutil import parser as date_parser

from ..errors import EmptySourceError, SchemaConflictError
from .types import INTEGER_PATTERN, ColumnDescriptor, ColumnType, TableSchema

Row = Dict[str, Any]


def is_integer(value: str) -> bool:
    """Optional leading minus followed by one or more digits, nothing else"""
    return INTEGER_PATTERN.fullmatch(value) is not None


def is_datetime(value: str) -> bool:
    """True if the value parses as a calendar date/time under dateutil's permissive rules"""
    if not value or not value.strip():
        return False
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False
    return True


class TypeInferenceEngine:
    """
    Derives a TableSchema from the header and first data row of a row stream.

    Precedence is INTEGER > DATETIME > STRING; the first test that succeeds
    locks the column type.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def classify(value: Optional[str]) -> ColumnType:
        if value is None:
            return ColumnType.STRING
        if is_integer(value):
            return ColumnType.INTEGER
        if is_datetime(value):
            return ColumnType.DATETIME
        return ColumnType.STRING

    def infer(self, rows: Iterable[Row], columns: Optional[Sequence[str]] = None) -> TableSchema:
        """
        Infer the table schema from a row sequence.

        Args:
            rows: Row mappings in source order. If the iterable exposes a
                ``columns`` attribute (e.g. a RowStream) it is used as the header.
            columns: Explicit header; overrides ``rows.columns``

        Returns:
            TableSchema with one descriptor per header column

        Raises:
            SchemaConflictError: If the header repeats a column name
            EmptySourceError: If there is no header or no data row
        """
        source = str(getattr(rows, 'path', '<rows>'))
        if columns is None:
            columns = getattr(rows, 'columns', None)

        if columns is not None:
            if len(columns) == 0:
                raise EmptySourceError(source, 'no header row')
            self._check_duplicates(columns)

        first_row = next(iter(rows), None)
        if first_row is None:
            raise EmptySourceError(source, 'no data rows')

        if columns is None:
            columns = list(first_row.keys())

        descriptors = [ColumnDescriptor(name, self.classify(first_row.get(name))) for name in columns]
        schema = TableSchema(tuple(descriptors))

        self.logger.debug(f'Inferred schema for {source}: {schema}')
        return schema

    def _check_duplicates(self, columns: Sequence[str]) -> None:
        duplicates: List[str] = [name for name, count in Counter(columns).items() if count > 1]
        if duplicates:
            raise SchemaConflictError(duplicates)
