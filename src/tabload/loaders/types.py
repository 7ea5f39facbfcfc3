"""
Shared types for loader operations.

This module contains types that are used across multiple modules to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..errors import BatchInsertError, ConfigurationError, LoaderError


class IfExists(Enum):
    """What to do when the target table is already present"""

    FAIL = 'fail'
    REPLACE = 'replace'


@dataclass
class LoadResult:
    """Per-table outcome of a load run"""

    rows_loaded: int
    duration: float
    ops_per_second: float
    table_name: str
    loader_type: str
    success: bool
    rows_observed: int = 0
    batches_submitted: int = 0
    error: Optional[LoaderError] = None
    batch_errors: List[BatchInsertError] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        """Some rows were read but not committed"""
        return self.rows_loaded < self.rows_observed

    def __str__(self) -> str:
        if self.success:
            return f'✅ Loaded {self.rows_loaded} rows to {self.table_name} in {self.duration:.2f}s'
        else:
            return (
                f'❌ Failed to load {self.table_name} '
                f'({self.rows_loaded}/{self.rows_observed} rows inserted): {self.error}'
            )


@dataclass
class LoadConfig:
    """Configuration for data loading operations"""

    batch_size: int = 100
    if_exists: Union[IfExists, str] = IfExists.FAIL
    insert_workers: int = 1  # Threads executing batch inserts; 1 keeps physical insert order
    max_in_flight: int = 4  # Unresolved batches allowed before the reader waits
    table_workers: int = 1  # Tables loaded concurrently by the orchestrator
    delimiter: str = ','
    encoding: str = 'utf-8-sig'  # Strips a leading BOM

    def __post_init__(self):
        if isinstance(self.if_exists, str):
            try:
                self.if_exists = IfExists(self.if_exists)
            except ValueError as e:
                choices = [m.value for m in IfExists]
                raise ConfigurationError(f'if_exists must be one of {choices}, got {self.if_exists!r}') from e
        if self.batch_size < 1:
            raise ConfigurationError(f'batch_size must be >= 1, got {self.batch_size}')
        if self.insert_workers < 1:
            raise ConfigurationError(f'insert_workers must be >= 1, got {self.insert_workers}')
        if self.max_in_flight < 1:
            raise ConfigurationError(f'max_in_flight must be >= 1, got {self.max_in_flight}')
        if self.table_workers < 1:
            raise ConfigurationError(f'table_workers must be >= 1, got {self.table_workers}')
        if len(self.delimiter) != 1:
            raise ConfigurationError(f'delimiter must be a single character, got {self.delimiter!r}')
