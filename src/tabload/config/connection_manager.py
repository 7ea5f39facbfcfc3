import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlparse

from ..errors import ConfigurationError
from ..loaders.base import DataLoader
from ..loaders.registry import LoaderRegistry

DEFAULT_CONNECTIONS_FILE = '~/.tabload_connections.json'

# Environment variables consulted, in order, when a connection is not in the file
ENV_PATTERNS = {
    'postgresql': ['DATABASE_URL', 'POSTGRESQL_URL', 'POSTGRES_URL'],
    'sqlite': ['SQLITE_PATH'],
}


class ConnectionManager:
    """Manages named connections for the storage loaders"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or os.getenv('TABLOAD_CONNECTIONS', DEFAULT_CONNECTIONS_FILE)
        self.connections: Dict[str, Dict[str, Any]] = {}
        self.logger = logging.getLogger(__name__)
        self._load_connections()

    def add_connection(self, name: str, loader: str, config: Dict[str, Any]) -> None:
        """Add or replace a named connection and persist it"""
        LoaderRegistry.get_loader_class(loader)
        self.connections[name] = {'loader': loader, 'config': config}
        self._save_connections()
        self.logger.info(f"Added connection '{name}' for loader '{loader}'")

    def get_connection_info(self, name: str) -> Dict[str, Any]:
        """
        Resolve ``name`` to ``{'loader': ..., 'config': {...}}``.

        Raises:
            ConfigurationError: If the name is neither in the file nor resolvable from the environment
        """
        if name in self.connections:
            return self.connections[name]

        loader_type = self._infer_loader_type_from_name(name)
        env_config = self._get_env_config(loader_type) if loader_type else None
        if env_config:
            return {'loader': loader_type, 'config': env_config}

        raise ConfigurationError(f"Connection '{name}' not found. Available: {list(self.connections.keys())}")

    def loader_factory(self, name: str) -> Callable[[], DataLoader]:
        """Return a callable creating a fresh loader for the named connection on each call"""
        info = self.get_connection_info(name)
        loader_class = LoaderRegistry.get_loader_class(info['loader'])
        config = dict(info['config'])
        return lambda: loader_class(dict(config))

    def list_connections(self) -> Dict[str, str]:
        """List configured connections as ``{name: loader}``"""
        return {name: conn['loader'] for name, conn in self.connections.items()}

    def remove_connection(self, name: str) -> None:
        if name not in self.connections:
            raise ConfigurationError(f"Connection '{name}' not found")
        del self.connections[name]
        self._save_connections()
        self.logger.info(f"Removed connection '{name}'")

    def _infer_loader_type_from_name(self, name: str) -> Optional[str]:
        name_lower = name.lower()
        if 'sqlite' in name_lower:
            return 'sqlite'
        if any(db_name in name_lower for db_name in ('postgres', 'postgresql', 'pg')):
            return 'postgresql'
        return None

    def _load_connections(self) -> None:
        config_path = Path(self.config_file).expanduser()
        if not config_path.exists():
            self.logger.debug(f'No connection file found at {config_path}')
            return

        try:
            with open(config_path, 'r') as f:
                self.connections = json.load(f)
            self.logger.debug(f'Loaded {len(self.connections)} connections from {config_path}')
        except (json.JSONDecodeError, IOError) as e:
            self.logger.warning(f'Failed to load connections from {config_path}: {e}')
            self.connections = {}

    def _save_connections(self) -> None:
        config_path = Path(self.config_file).expanduser()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(config_path, 'w') as f:
                json.dump(self.connections, f, indent=2)
            self.logger.debug(f'Saved {len(self.connections)} connections to {config_path}')
        except IOError as e:
            self.logger.warning(f'Failed to save connections to {config_path}: {e}')

    def _get_env_config(self, loader_type: str) -> Optional[Dict[str, Any]]:
        for env_var in ENV_PATTERNS.get(loader_type, []):
            value = os.environ.get(env_var)
            if not value:
                continue
            self.logger.debug(f"Using {env_var} for '{loader_type}' connection")
            if loader_type == 'sqlite':
                return {'database': value}
            return self._parse_connection_url(value)
        return None

    def _parse_connection_url(self, url: str) -> Dict[str, Any]:
        """Parse a postgresql:// URL into a PostgreSQLConfig dict"""
        parsed = urlparse(url)
        config: Dict[str, Any] = {}

        if parsed.hostname:
            config['host'] = parsed.hostname
        if parsed.port:
            config['port'] = parsed.port
        if parsed.path and parsed.path != '/':
            config['database'] = parsed.path.lstrip('/')
        if parsed.username:
            config['user'] = parsed.username
        if parsed.password:
            config['password'] = parsed.password

        # Remaining query parameters (sslmode, connect_timeout, ...) go to psycopg2 as-is
        params = {key: values[0] for key, values in parse_qs(parsed.query).items() if values}
        if params:
            config['connection_params'] = params

        return config
