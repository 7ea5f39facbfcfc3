# loaders/implementations/__init__.py
"""
Storage backend implementations
"""

from .sqlite_loader import SQLiteLoader

__all__ = ['SQLiteLoader']
