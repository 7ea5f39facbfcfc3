"""
Storage backends for tabload.

Usage:
    from tabload.loaders import create_loader

    with create_loader('sqlite', {'database': './out/database.sqlite'}) as loader:
        loader.create_table(schema.to_arrow(), 'customers')
        loader.load_batch(record_batch, 'customers')
"""

from .base import DataLoader
from .registry import LoaderRegistry, create_loader, get_available_loaders, get_loader_class
from .types import IfExists, LoadConfig, LoadResult

__all__ = [
    'DataLoader',
    'LoadResult',
    'LoadConfig',
    'IfExists',
    'LoaderRegistry',
    'get_loader_class',
    'create_loader',
    'get_available_loaders',
]
