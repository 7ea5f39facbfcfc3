"""
Base class for storage backends that receive inferred tables and row batches.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import fields, is_dataclass
from logging import Logger
from typing import Any, Dict, Generic, Optional, TypeVar

import pyarrow as pa

from ..errors import ConfigurationError, DdlError, LoaderError, TableAlreadyExistsError
from ..streaming.resilience import ErrorClassifier, ExponentialBackoff, RetryConfig
from .types import LoadResult

# Type variable for configuration classes
TConfig = TypeVar('TConfig')


class DataLoader(ABC, Generic[TConfig]):
    """
    Abstract base class for all storage backends.

    Subclasses provide the connection handling and the three storage
    primitives (create, drop, insert batch); this class adds:
    - Typed configuration parsing and validation
    - Existence checks before creation
    - Error translation into TableAlreadyExistsError / DdlError
    - Retry with exponential backoff for transient insert failures
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        self.logger: Logger = logging.getLogger(f'{self.__class__.__name__}')
        self._is_connected: bool = False

        # Parse configuration into typed format
        self.config: TConfig = self._parse_config(config)

        self._validate_config()

        resilience_config = config.get('resilience', {})
        self.retry_config = RetryConfig(**resilience_config.get('retry', {}))

    @property
    def is_connected(self) -> bool:
        """Check if the loader is connected to the target system."""
        return self._is_connected

    @property
    def loader_type(self) -> str:
        return self.__class__.__name__.replace('Loader', '').lower()

    def _parse_config(self, config: Dict[str, Any]) -> TConfig:
        """
        Parse configuration into loader-specific format.
        Generic implementation that works with dataclass configs.
        Override only if you need custom parsing logic.
        """
        # For loaders that don't use typed configs, just return the dict
        if not hasattr(self, '__orig_bases__'):
            return config  # type: ignore

        # Filter out reserved config keys handled by base loader
        reserved_keys = {'resilience'}
        filtered_config = {k: v for k, v in config.items() if k not in reserved_keys}

        # Get the actual config type from the generic parameter
        for base in self.__orig_bases__:
            if hasattr(base, '__args__') and base.__args__:
                config_type = base.__args__[0]
                # Check if it's a real type (not TypeVar)
                if hasattr(config_type, '__name__'):
                    try:
                        return config_type(**filtered_config)
                    except TypeError as e:
                        raise ConfigurationError(f'Invalid {self.__class__.__name__} configuration: {e}') from e

        return config  # type: ignore

    def _validate_config(self) -> None:
        """
        Validate configuration parameters.
        Override to add loader-specific validation.
        """
        required_fields = self._get_required_config_fields()

        # Handle both dict and dataclass config objects
        if is_dataclass(self.config):
            config_field_names = {f.name for f in fields(self.config)}
            missing_fields = [
                name
                for name in required_fields
                if name not in config_field_names or getattr(self.config, name) in (None, '')
            ]
        else:  # dict
            missing_fields = [name for name in required_fields if name not in self.config]

        if missing_fields:
            raise ConfigurationError(f'Missing required configuration fields: {missing_fields}')

    def _get_required_config_fields(self) -> list[str]:
        """
        Return list of required configuration fields.
        Override in subclasses.
        """
        return []

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the target system"""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the target system"""
        pass

    def close(self) -> None:
        """Alias for disconnect()"""
        self.disconnect()

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the target system"""
        pass

    @abstractmethod
    def _create_table_from_schema(self, schema: pa.Schema, table_name: str) -> None:
        """Issue the backend CREATE TABLE for an Arrow schema"""
        pass

    @abstractmethod
    def _drop_table(self, table_name: str) -> None:
        """Issue the backend DROP TABLE"""
        pass

    @abstractmethod
    def _load_batch_impl(self, batch: pa.RecordBatch, table_name: str) -> int:
        """
        Implementation-specific batch loading logic.
        Must commit the batch atomically. Returns number of rows loaded.
        """
        pass

    def render_create_table(self, schema: pa.Schema, table_name: str) -> str:
        """Return the CREATE TABLE statement this loader would issue"""
        raise NotImplementedError(f'{self.__class__.__name__} does not implement render_create_table()')

    def get_table_schema(self, table_name: str) -> Optional[pa.Schema]:
        """Get the schema of an existing table"""
        raise NotImplementedError(f'{self.__class__.__name__} does not implement get_table_schema()')

    def create_table(self, schema: pa.Schema, table_name: str) -> None:
        """
        Create a new table with one column per schema field.

        Raises:
            TableAlreadyExistsError: If the table is already present
            DdlError: If the backend rejects the statement
        """
        if not self._is_connected:
            self.connect()

        try:
            if self.table_exists(table_name):
                raise TableAlreadyExistsError(table_name)
            self._create_table_from_schema(schema, table_name)
        except LoaderError:
            raise
        except Exception as e:
            if 'already exists' in str(e).lower():
                raise TableAlreadyExistsError(table_name) from e
            raise DdlError(table_name, str(e)) from e

        self.logger.info(f"Created table '{table_name}' with {len(schema)} columns")

    def drop_table(self, table_name: str) -> None:
        """Drop a table if it exists"""
        if not self._is_connected:
            self.connect()

        try:
            self._drop_table(table_name)
        except Exception as e:
            raise DdlError(table_name, f'drop failed: {e}') from e

        self.logger.info(f"Dropped table '{table_name}'")

    def load_batch(self, batch: pa.RecordBatch, table_name: str) -> int:
        """
        Insert one Arrow RecordBatch, retrying transient failures.

        Returns:
            Number of rows committed

        Raises:
            Exception: The backend error of the last attempt
        """
        if not self._is_connected:
            self.connect()

        backoff = ExponentialBackoff(self.retry_config)

        while True:
            try:
                return self._load_batch_impl(batch, table_name)
            except Exception as e:
                if not ErrorClassifier.is_transient(str(e)):
                    raise

                delay = backoff.next_delay()
                if delay is None:
                    self.logger.error(f"Giving up on batch for '{table_name}' after {backoff.attempt} retries: {e}")
                    raise

                self.logger.warning(
                    f'Transient error loading batch (attempt {backoff.attempt}/{self.retry_config.max_retries}): '
                    f'{e}. Retrying in {delay:.2f}s...'
                )
                time.sleep(delay)

    def failed_result(self, table_name: str, error: LoaderError, duration: float = 0.0) -> LoadResult:
        """Build a LoadResult for a table that failed before any batch was submitted"""
        return LoadResult(
            rows_loaded=0,
            duration=duration,
            ops_per_second=0,
            table_name=table_name,
            loader_type=self.loader_type,
            success=False,
            error=error,
        )

    def __enter__(self) -> 'DataLoader':
        self.connect()
        return self

    def __exit__(self, exc_type: Optional[type], exc_val: Optional[BaseException], exc_tb: Optional[Any]) -> None:
        self.disconnect()
