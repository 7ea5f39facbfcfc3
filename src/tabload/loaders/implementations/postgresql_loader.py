from dataclasses import dataclass
from typing import Any, Dict, Optional

import pyarrow as pa
from psycopg2.extras import execute_values
from psycopg2.pool import ThreadedConnectionPool

from ..base import DataLoader
from ..utils import ArrowTypeConverter, TableNameUtils, prepare_insert_data


@dataclass
class PostgreSQLConfig:
    """Configuration for PostgreSQL loader"""

    host: str
    database: str
    user: str
    password: str
    port: int = 5432
    schema: str = 'public'
    max_connections: int = 10
    connection_params: Dict[str, Any] = None

    def __post_init__(self):
        if self.connection_params is None:
            self.connection_params = {}
        self.port = int(self.port)


class PostgreSQLLoader(DataLoader[PostgreSQLConfig]):
    """PostgreSQL data loader with connection pooling."""

    def __init__(self, config: Dict[str, Any]) -> None:
        super().__init__(config)
        self.pool: Optional[ThreadedConnectionPool] = None

    def _get_required_config_fields(self) -> list[str]:
        """Return required configuration fields"""
        return ['host', 'database', 'user', 'password']

    def connect(self) -> None:
        """Establish connection pool to PostgreSQL"""
        if self._is_connected:
            return

        try:
            self.pool = ThreadedConnectionPool(
                minconn=1,
                maxconn=self.config.max_connections,
                host=self.config.host,
                port=self.config.port,
                database=self.config.database,
                user=self.config.user,
                password=self.config.password,
                **self.config.connection_params,
            )

            conn = self.pool.getconn()
            try:
                with conn.cursor() as cur:
                    cur.execute('SELECT version();')
                    version = cur.fetchone()
                    self.logger.info(f'Connected to PostgreSQL: {version[0][:50]}...')
            finally:
                self.pool.putconn(conn)

            self._is_connected = True

        except Exception as e:
            self.logger.error(f'Failed to connect to PostgreSQL: {str(e)}')
            raise

    def disconnect(self) -> None:
        """Close PostgreSQL connection pool"""
        if self.pool:
            self.pool.closeall()
            self.pool = None
        self._is_connected = False
        self.logger.info('Disconnected from PostgreSQL')

    def _qualified(self, table_name: str) -> str:
        return f'{TableNameUtils.quote_identifier(self.config.schema)}.{TableNameUtils.quote_identifier(table_name)}'

    def table_exists(self, table_name: str) -> bool:
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT 1 FROM information_schema.tables
                    WHERE table_name = %s AND table_schema = %s
                """,
                    (table_name, self.config.schema),
                )
                return cur.fetchone() is not None
        finally:
            self.pool.putconn(conn)

    def render_create_table(self, schema: pa.Schema, table_name: str) -> str:
        columns = [ArrowTypeConverter.convert_arrow_field_to_sql(field, 'postgresql') for field in schema]
        return f'CREATE TABLE {self._qualified(table_name)} ({", ".join(columns)})'

    def _create_table_from_schema(self, schema: pa.Schema, table_name: str) -> None:
        """Create PostgreSQL table from Arrow schema"""
        create_sql = self.render_create_table(schema, table_name)

        conn = self.pool.getconn()
        try:
            with conn.cursor() as cursor:
                self.logger.debug(f'Executing: {create_sql}')
                cursor.execute(create_sql)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def _drop_table(self, table_name: str) -> None:
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(f'DROP TABLE IF EXISTS {self._qualified(table_name)}')
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def _load_batch_impl(self, batch: pa.RecordBatch, table_name: str) -> int:
        """Insert the batch with execute_values in a single transaction"""
        insert_sql_template, rows = prepare_insert_data(batch)
        # execute_values expands a single VALUES %s placeholder
        columns_sql = insert_sql_template.split(' VALUES ', 1)[0]
        insert_sql = f'INSERT INTO {self._qualified(table_name)} {columns_sql} VALUES %s'

        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                execute_values(cur, insert_sql, rows, page_size=max(len(rows), 1))
            conn.commit()
            return batch.num_rows
        except Exception as e:
            conn.rollback()
            if 'does not exist' in str(e):
                raise RuntimeError(f"Table '{table_name}' does not exist. error: {e}") from e
            raise
        finally:
            self.pool.putconn(conn)

    def get_table_schema(self, table_name: str) -> Optional[pa.Schema]:
        """Get the schema of an existing PostgreSQL table"""
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT column_name, data_type, is_nullable
                    FROM information_schema.columns
                    WHERE table_name = %s AND table_schema = %s
                    ORDER BY ordinal_position
                """,
                    (table_name, self.config.schema),
                )
                columns = cur.fetchall()
        finally:
            self.pool.putconn(conn)

        if not columns:
            return None

        return pa.schema(
            [
                pa.field(col_name, ArrowTypeConverter.sql_type_to_arrow(data_type), is_nullable.upper() == 'YES')
                for col_name, data_type, is_nullable in columns
            ]
        )
