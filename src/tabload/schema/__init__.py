"""Schema inference and table definition."""

from .definition import TableDefinitionGenerator
from .inference import TypeInferenceEngine
from .types import ColumnDescriptor, ColumnType, TableSchema

__all__ = ['ColumnDescriptor', 'ColumnType', 'TableSchema', 'TypeInferenceEngine', 'TableDefinitionGenerator']
