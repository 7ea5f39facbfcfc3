# tests/fixtures/mock_clients.py
"""
Mock loaders for testing schema creation, batch insertion and orchestration
without a database.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

import pyarrow as pa

from tabload.loaders.base import DataLoader


@dataclass
class MockConfig:
    """Mock configuration for testing"""

    test: Optional[str] = None


class MockStore:
    """Tables shared between MockDataLoader instances, like a database file"""

    def __init__(self):
        self.schemas: Dict[str, pa.Schema] = {}
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self.lock = threading.Lock()


class MockDataLoader(DataLoader[MockConfig]):
    """Mock data loader recording every call

    Attributes:
        fail_batches: 0-based load_batch call numbers that raise
        fail_exists_for: Table names whose existence check raises
        before_insert: Optional hook called with each batch before it is stored;
            tests use it to sleep or raise
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, store: Optional[MockStore] = None):
        super().__init__(config or {})
        self.store = store or MockStore()
        self.load_calls: List[int] = []
        self.connect_calls = 0
        self.close_calls = 0
        self.should_fail = False
        self.fail_on_connect = False
        self.fail_message = 'Mock failure'
        self.fail_batches: Set[int] = set()
        self.fail_exists_for: Set[str] = set()
        self.before_insert: Optional[Callable[[pa.RecordBatch], None]] = None
        self._calls_lock = threading.Lock()

    def _get_required_config_fields(self) -> list[str]:
        return []

    def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_on_connect:
            raise ConnectionError('could not connect to mock store')
        self._is_connected = True

    def disconnect(self) -> None:
        self.close_calls += 1
        self._is_connected = False

    def table_exists(self, table_name: str) -> bool:
        if table_name in self.fail_exists_for:
            raise RuntimeError(self.fail_message)
        return table_name in self.store.schemas

    def render_create_table(self, schema: pa.Schema, table_name: str) -> str:
        columns = ', '.join(f'{field.name} {field.type}' for field in schema)
        return f'CREATE TABLE {table_name} ({columns})'

    def _create_table_from_schema(self, schema: pa.Schema, table_name: str) -> None:
        with self.store.lock:
            self.store.schemas[table_name] = schema
            self.store.rows[table_name] = []

    def _drop_table(self, table_name: str) -> None:
        with self.store.lock:
            self.store.schemas.pop(table_name, None)
            self.store.rows.pop(table_name, None)

    def get_table_schema(self, table_name: str) -> Optional[pa.Schema]:
        return self.store.schemas.get(table_name)

    def _load_batch_impl(self, batch: pa.RecordBatch, table_name: str) -> int:
        with self._calls_lock:
            call_number = len(self.load_calls)
            self.load_calls.append(batch.num_rows)

        if self.before_insert is not None:
            self.before_insert(batch)

        if self.should_fail or call_number in self.fail_batches:
            raise RuntimeError(self.fail_message)

        with self.store.lock:
            self.store.rows[table_name].extend(batch.to_pylist())
        return batch.num_rows

    def rows(self, table_name: str) -> List[Dict[str, Any]]:
        return self.store.rows.get(table_name, [])
