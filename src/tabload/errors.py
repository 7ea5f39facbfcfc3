"""Exception hierarchy for tabload.

Errors are grouped by the load phase that raises them:

- inference: EmptySourceError, SchemaConflictError
- schema creation: TableAlreadyExistsError, DdlError
- streaming: SourceReadError, BatchInsertError
- orchestration: PartialLoadError
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .loaders.types import LoadResult


class LoaderError(Exception):
    """Base exception for all tabload errors."""

    pass


class ConfigurationError(LoaderError, ValueError):
    """Loader or load configuration is invalid or incomplete."""

    pass


# Inference-time errors
class EmptySourceError(LoaderError):
    """Source has no header or no data row to infer a schema from."""

    def __init__(self, source: str, reason: str = 'no data rows'):
        self.source = source
        self.reason = reason
        super().__init__(f'Cannot infer schema from {source}: {reason}')


class SchemaConflictError(LoaderError):
    """Header row declares the same column more than once."""

    def __init__(self, duplicates: List[str]):
        self.duplicates = duplicates
        super().__init__(f'Duplicate column names in header: {", ".join(duplicates)}')


# Schema-creation-time errors
class TableAlreadyExistsError(LoaderError):
    """Target table is already present in the store."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' already exists")


class DdlError(LoaderError):
    """Store rejected a CREATE/DROP TABLE request."""

    def __init__(self, table_name: str, message: str):
        self.table_name = table_name
        self.message = message
        super().__init__(f"Failed to create table '{table_name}': {message}")


# Streaming errors
class SourceReadError(LoaderError):
    """Reading the row source failed mid-stream."""

    def __init__(self, path: str, message: str, line_number: Optional[int] = None):
        self.path = path
        self.message = message
        self.line_number = line_number
        location = f'{path}:{line_number}' if line_number is not None else path
        super().__init__(f'Error reading {location}: {message}')


class BatchInsertError(LoaderError):
    """A single batch failed to insert.

    Attributes:
        batch_index: 0-based position of the batch in submission order
        first_row: 1-based data row number of the first row in the batch
        last_row: 1-based data row number of the last row in the batch
    """

    def __init__(self, table_name: str, batch_index: int, first_row: int, last_row: int, message: str):
        self.table_name = table_name
        self.batch_index = batch_index
        self.first_row = first_row
        self.last_row = last_row
        self.message = message
        super().__init__(
            f"Batch {batch_index} (rows {first_row}-{last_row}) failed to insert into '{table_name}': {message}"
        )

    @property
    def row_count(self) -> int:
        return self.last_row - self.first_row + 1


# Orchestration errors
class PartialLoadError(LoaderError):
    """One or more tables failed after every table was attempted."""

    def __init__(self, results: List['LoadResult']):
        self.results = results
        self.failed_tables = [r.table_name for r in results if not r.success]
        super().__init__(
            f'{len(self.failed_tables)} of {len(results)} tables failed to load: {", ".join(self.failed_tables)}'
        )
