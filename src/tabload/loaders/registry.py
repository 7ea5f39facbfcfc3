"""
Maps loader names to DataLoader classes.

Built-in backends are imported on first lookup, so the PostgreSQL driver is
only loaded when a PostgreSQL connection is actually used.
"""

import importlib
import logging
from typing import Any, Dict, List, Type

from ..errors import ConfigurationError
from .base import DataLoader

# name -> 'module:ClassName', relative to the implementations package
BUILTIN_LOADERS: Dict[str, str] = {
    'sqlite': 'sqlite_loader:SQLiteLoader',
    'postgresql': 'postgresql_loader:PostgreSQLLoader',
}


class LoaderRegistry:
    """Registry of storage backends the orchestrator and CLI can target"""

    _loaders: Dict[str, Type[DataLoader]] = {}
    _logger = logging.getLogger(__name__)

    @classmethod
    def register(cls, name: str, loader_class: Type[DataLoader]) -> None:
        """Register an additional loader class under ``name``"""
        if not isinstance(loader_class, type) or not issubclass(loader_class, DataLoader):
            raise ValueError(f'Loader class {loader_class} must inherit from DataLoader')

        cls._loaders[name] = loader_class
        cls._logger.debug(f'Registered loader: {name}')

    @classmethod
    def get_loader_class(cls, name: str) -> Type[DataLoader]:
        """
        Resolve a loader name to its class.

        Raises:
            ConfigurationError: Unknown name, or the backend driver cannot be imported
        """
        if name in cls._loaders:
            return cls._loaders[name]

        if name not in BUILTIN_LOADERS:
            raise ConfigurationError(f"Loader '{name}' not found. Available loaders: {cls.get_available_loaders()}")

        module_name, class_name = BUILTIN_LOADERS[name].split(':')
        try:
            module = importlib.import_module(f'{__package__}.implementations.{module_name}')
        except ImportError as e:
            raise ConfigurationError(f"Loader '{name}' is unavailable: {e}") from e

        loader_class = getattr(module, class_name)
        cls.register(name, loader_class)
        return loader_class

    @classmethod
    def create_loader(cls, name: str, config: Dict[str, Any]) -> DataLoader:
        """Create an unconnected loader instance"""
        return cls.get_loader_class(name)(config)

    @classmethod
    def get_available_loaders(cls) -> List[str]:
        """Built-in loader names followed by any registered extras"""
        return list(BUILTIN_LOADERS) + [name for name in cls._loaders if name not in BUILTIN_LOADERS]


def get_loader_class(name: str) -> Type[DataLoader]:
    return LoaderRegistry.get_loader_class(name)


def create_loader(name: str, config: Dict[str, Any]) -> DataLoader:
    return LoaderRegistry.create_loader(name, config)


def get_available_loaders() -> List[str]:
    return LoaderRegistry.get_available_loaders()
