"""
Named loader connections stored in a JSON file, with environment fallbacks.
"""

from .connection_manager import ConnectionManager

__all__ = ['ConnectionManager']
