"""
Base test classes and configuration for loader integration tests.

A LoaderTestConfig supplies the backend-specific queries; the shared tests
in test_base_loader.py run unchanged against every backend.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Type

import pytest

from tabload.loaders.base import DataLoader


@pytest.fixture
def test_table_name():
    """Generate unique table name for each test"""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
    return f'test_table_{timestamp}'


class LoaderTestConfig(ABC):
    """
    Configuration for a specific loader's tests.

    Each loader implementation provides the queries the shared tests need
    to verify what was written.
    """

    loader_class: Type[DataLoader] = None

    # Name of the pytest fixture that provides the loader config dict
    config_fixture_name: str = None

    # Declared column type per inferred type: (INTEGER, DATETIME, STRING)
    column_types: tuple = ()

    @abstractmethod
    def query_rows(self, loader: DataLoader, table_name: str, order_by: str) -> List[Dict[str, Any]]:
        """Return every row of the table as a dict, ordered by ``order_by``"""
        raise NotImplementedError

    @abstractmethod
    def get_declared_types(self, loader: DataLoader, table_name: str) -> List[str]:
        """Return the declared SQL type of each column, in column order"""
        raise NotImplementedError

    def get_row_count(self, loader: DataLoader, table_name: str) -> int:
        return len(self.query_rows(loader, table_name, order_by='1'))

    def cleanup_table(self, loader: DataLoader, table_name: str) -> None:
        loader.drop_table(table_name)


class LoaderTestBase:
    """
    Base class for all loader tests.

    Test classes should inherit from this and set the `config` class attribute
    to a LoaderTestConfig instance.
    """

    config: LoaderTestConfig = None

    @pytest.fixture
    def loader_config(self, request) -> Dict[str, Any]:
        if self.config is None or self.config.config_fixture_name is None:
            raise ValueError('Test class must define a config with config_fixture_name')
        return request.getfixturevalue(self.config.config_fixture_name)

    @pytest.fixture
    def loader(self, loader_config):
        """Unconnected loader instance, always closed after the test"""
        loader = self.config.loader_class(loader_config)
        yield loader
        loader.close()

    @pytest.fixture
    def loader_factory(self, loader_config):
        return lambda: self.config.loader_class(dict(loader_config))

    @pytest.fixture
    def cleanup_tables(self, loader_config):
        """
        Tests append table names to this list; they are dropped after the test.
        """
        tables_to_clean = []

        yield tables_to_clean

        if tables_to_clean:
            loader = self.config.loader_class(loader_config)
            try:
                loader.connect()
                for table_name in tables_to_clean:
                    self.config.cleanup_table(loader, table_name)
            finally:
                loader.close()
