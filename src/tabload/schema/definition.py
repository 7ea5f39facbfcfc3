"""
Turns an inferred TableSchema into a storage table.

Column types go through Arrow: INTEGER -> int64, DATETIME -> timestamp('us'),
STRING -> string. Each loader maps the Arrow type to its own column type.
"""

import logging
from typing import Union

import pyarrow as pa

from ..errors import DdlError
from ..loaders.base import DataLoader
from ..loaders.types import IfExists
from .types import TableSchema


class TableDefinitionGenerator:
    """Issues the single CREATE TABLE request for an inferred schema"""

    def __init__(self, loader: DataLoader) -> None:
        self.loader = loader
        self.logger = logging.getLogger(self.__class__.__name__)

    def render(self, table_name: str, schema: TableSchema) -> str:
        """Return the CREATE TABLE statement without executing it"""
        return self.loader.render_create_table(schema.to_arrow(), table_name)

    def create(
        self, table_name: str, schema: TableSchema, if_exists: Union[IfExists, str] = IfExists.FAIL
    ) -> pa.Schema:
        """
        Create ``table_name`` with one nullable column per descriptor.

        Args:
            table_name: Caller-supplied target table name
            schema: Inferred table schema
            if_exists: FAIL raises when the table exists, REPLACE drops and recreates it

        Returns:
            The Arrow schema the table was created from

        Raises:
            TableAlreadyExistsError: Table exists and if_exists is FAIL
            DdlError: Backend rejected the statement
        """
        if_exists = IfExists(if_exists)
        arrow_schema = schema.to_arrow()

        if not self.loader.is_connected:
            self.loader.connect()

        if if_exists == IfExists.REPLACE and self._exists(table_name):
            self.logger.warning(f"Table '{table_name}' already exists, dropping it before recreating")
            self.loader.drop_table(table_name)

        self.loader.create_table(arrow_schema, table_name)
        self.logger.debug(f"Table '{table_name}' defined as: {schema}")
        return arrow_schema

    def _exists(self, table_name: str) -> bool:
        try:
            return self.loader.table_exists(table_name)
        except Exception as e:
            raise DdlError(table_name, f'existence check failed: {e}') from e
