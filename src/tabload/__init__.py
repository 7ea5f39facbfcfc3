"""tabload - infer table schemas from delimited text files and stream them into SQL stores."""

from tabload.errors import LoaderError, PartialLoadError
from tabload.loaders import IfExists, LoadConfig, LoadResult, create_loader
from tabload.orchestrator import LoadJob, LoadOrchestrator
from tabload.schema import ColumnType, TableSchema, TypeInferenceEngine
from tabload.sources import CsvRowSource

__version__ = '0.1.0'

__all__ = [
    'CsvRowSource',
    'ColumnType',
    'TableSchema',
    'TypeInferenceEngine',
    'IfExists',
    'LoadConfig',
    'LoadResult',
    'LoadJob',
    'LoadOrchestrator',
    'LoaderError',
    'PartialLoadError',
    'create_loader',
]
