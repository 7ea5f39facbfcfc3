import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import pyarrow as pa

from ..base import DataLoader
from ..utils import ArrowTypeConverter, TableNameUtils, prepare_insert_data


@dataclass
class SQLiteConfig:
    """Configuration for SQLite loader"""

    database: str
    timeout: float = 30.0  # Seconds to wait on a locked database
    journal_mode: Optional[str] = None  # e.g. 'WAL' for concurrent table loads
    create_parent_dirs: bool = True


class SQLiteLoader(DataLoader[SQLiteConfig]):
    """SQLite data loader.

    A single connection is shared by every thread of a load; statement
    execution is serialized with a lock.
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        super().__init__(config)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def _get_required_config_fields(self) -> list[str]:
        return ['database']

    def connect(self) -> None:
        """Open the database file"""
        if self._is_connected:
            return

        database = self.config.database
        if database != ':memory:' and self.config.create_parent_dirs:
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = sqlite3.connect(database, timeout=self.config.timeout, check_same_thread=False)
            if self.config.journal_mode:
                self.conn.execute(f'PRAGMA journal_mode={self.config.journal_mode}')
            version = self.conn.execute('SELECT sqlite_version()').fetchone()[0]
        except sqlite3.Error as e:
            self.logger.error(f'Failed to connect to SQLite database {database}: {e}')
            raise

        self._is_connected = True
        self.logger.info(f'Connected to SQLite {version} database: {database}')

    def disconnect(self) -> None:
        """Close the database connection"""
        if self.conn:
            with self._lock:
                self.conn.close()
            self.conn = None
        self._is_connected = False
        self.logger.info('Disconnected from SQLite')

    def table_exists(self, table_name: str) -> bool:
        with self._lock:
            cursor = self.conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table_name,),
            )
            return cursor.fetchone() is not None

    def render_create_table(self, schema: pa.Schema, table_name: str) -> str:
        columns = [ArrowTypeConverter.convert_arrow_field_to_sql(field, 'sqlite') for field in schema]
        return f'CREATE TABLE {TableNameUtils.quote_identifier(table_name)} ({", ".join(columns)})'

    def _create_table_from_schema(self, schema: pa.Schema, table_name: str) -> None:
        create_sql = self.render_create_table(schema, table_name)
        self.logger.debug(f'Executing: {create_sql}')
        with self._lock:
            with self.conn:
                self.conn.execute(create_sql)

    def _drop_table(self, table_name: str) -> None:
        with self._lock:
            with self.conn:
                self.conn.execute(f'DROP TABLE IF EXISTS {TableNameUtils.quote_identifier(table_name)}')

    def _load_batch_impl(self, batch: pa.RecordBatch, table_name: str) -> int:
        """Insert all rows of the batch in one transaction"""
        insert_sql_template, rows = prepare_insert_data(batch, placeholder='?', datetime_as_text=True)
        insert_sql = f'INSERT INTO {TableNameUtils.quote_identifier(table_name)} {insert_sql_template}'

        with self._lock:
            # Commits on success, rolls the whole batch back on error
            with self.conn:
                self.conn.executemany(insert_sql, rows)
        return batch.num_rows

    def get_table_schema(self, table_name: str) -> Optional[pa.Schema]:
        """Get the schema of an existing SQLite table"""
        with self._lock:
            columns = self.conn.execute(f'PRAGMA table_info({TableNameUtils.quote_identifier(table_name)})').fetchall()

        if not columns:
            return None

        # PRAGMA table_info rows: (cid, name, type, notnull, dflt_value, pk)
        return pa.schema(
            [pa.field(name, ArrowTypeConverter.sql_type_to_arrow(sql_type), not notnull) for _, name, sql_type, notnull, _, _ in columns]
        )
