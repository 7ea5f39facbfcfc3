"""
Common utilities for data loaders to reduce code duplication.
"""

from datetime import datetime
from typing import Any, Dict, List, Tuple

import pyarrow as pa


class ArrowTypeConverter:
    """
    Centralized Arrow type conversion utilities used across loaders.
    """

    @staticmethod
    def get_postgresql_type_mapping() -> Dict[pa.DataType, str]:
        """Get Arrow to PostgreSQL type mapping"""
        return {
            pa.int8(): 'SMALLINT',
            pa.int16(): 'SMALLINT',
            pa.int32(): 'INTEGER',
            pa.int64(): 'BIGINT',
            pa.float32(): 'REAL',
            pa.float64(): 'DOUBLE PRECISION',
            pa.string(): 'TEXT',
            pa.large_string(): 'TEXT',
            pa.bool_(): 'BOOLEAN',
            pa.date32(): 'DATE',
        }

    @staticmethod
    def get_sqlite_type_mapping() -> Dict[pa.DataType, str]:
        """Get Arrow to SQLite type mapping (declared types drive SQLite column affinity)"""
        return {
            pa.int8(): 'INTEGER',
            pa.int16(): 'INTEGER',
            pa.int32(): 'INTEGER',
            pa.int64(): 'INTEGER',
            pa.float32(): 'REAL',
            pa.float64(): 'REAL',
            pa.string(): 'TEXT',
            pa.large_string(): 'TEXT',
            pa.bool_(): 'BOOLEAN',
            pa.date32(): 'DATE',
        }

    @staticmethod
    def convert_arrow_field_to_sql(field: pa.Field, target_system: str) -> str:
        """
        Convert an Arrow field to SQL column definition.

        Args:
            field: Arrow field to convert
            target_system: Target system ('postgresql' or 'sqlite')

        Returns:
            SQL column definition string
        """
        type_mappings = {
            'postgresql': ArrowTypeConverter.get_postgresql_type_mapping(),
            'sqlite': ArrowTypeConverter.get_sqlite_type_mapping(),
        }

        if target_system not in type_mappings:
            raise ValueError(f'Unsupported target system: {target_system}')

        type_mapping = type_mappings[target_system]

        if pa.types.is_timestamp(field.type):
            if target_system == 'postgresql':
                sql_type = 'TIMESTAMPTZ' if field.type.tz is not None else 'TIMESTAMP'
            else:  # sqlite
                sql_type = 'DATETIME'
        else:
            sql_type = type_mapping.get(field.type, 'TEXT')

        nullable = '' if field.nullable else ' NOT NULL'

        return f'{TableNameUtils.quote_identifier(field.name)} {sql_type}{nullable}'

    @staticmethod
    def sql_type_to_arrow(sql_type: str) -> pa.DataType:
        """Convert a declared SQL column type back to an Arrow type"""
        sql_type = sql_type.upper()

        type_mapping = {
            'SMALLINT': pa.int16(),
            'INTEGER': pa.int64(),
            'BIGINT': pa.int64(),
            'REAL': pa.float64(),
            'DOUBLE PRECISION': pa.float64(),
            'TEXT': pa.string(),
            'BOOLEAN': pa.bool_(),
            'DATE': pa.date32(),
            'DATETIME': pa.timestamp('us'),
            'TIMESTAMP': pa.timestamp('us'),
            'TIMESTAMP WITHOUT TIME ZONE': pa.timestamp('us'),
            'TIMESTAMPTZ': pa.timestamp('us', tz='UTC'),
            'TIMESTAMP WITH TIME ZONE': pa.timestamp('us', tz='UTC'),
        }

        if sql_type.startswith('VARCHAR') or sql_type.startswith('CHARACTER'):
            return pa.string()

        return type_mapping.get(sql_type, pa.string())


class TableNameUtils:
    """
    Utilities for table name handling and validation.
    """

    @staticmethod
    def sanitize_table_name(table_name: str) -> str:
        """
        Derive a table name from a file name or free text.

        Args:
            table_name: Original name, e.g. 'customers.csv'

        Returns:
            Lowercase identifier without extension, starting with a letter or underscore
        """
        if '.' in table_name:
            table_name = table_name.rsplit('.', 1)[0]

        sanitized = table_name.replace('-', '_').replace(' ', '_').replace('.', '_')

        if sanitized and not (sanitized[0].isalpha() or sanitized[0] == '_'):
            sanitized = f't_{sanitized}'

        return sanitized.lower()

    @staticmethod
    def quote_identifier(identifier: str) -> str:
        """Double-quote an identifier, escaping embedded quotes (valid for SQLite and PostgreSQL)"""
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'


def prepare_insert_data(
    data: pa.RecordBatch, placeholder: str = '%s', datetime_as_text: bool = False
) -> Tuple[str, List[Tuple[Any, ...]]]:
    """
    Prepare a RecordBatch for parameterized INSERT operations.

    Args:
        data: Arrow RecordBatch
        placeholder: DB-API parameter marker ('%s' for psycopg2, '?' for sqlite3)
        datetime_as_text: Render datetime values as ISO text instead of passing objects

    Returns:
        Tuple of (insert_sql_template, rows_data)
    """
    column_names = [field.name for field in data.schema]

    placeholders = ', '.join([placeholder] * len(column_names))
    quoted = ', '.join(TableNameUtils.quote_identifier(name) for name in column_names)
    insert_sql = f'({quoted}) VALUES ({placeholders})'

    columns = [data.column(i).to_pylist() for i in range(data.num_columns)]

    rows = []
    for values in zip(*columns):
        if datetime_as_text:
            values = tuple(v.isoformat(sep=' ') if isinstance(v, datetime) else v for v in values)
        rows.append(tuple(values))

    return insert_sql, rows
