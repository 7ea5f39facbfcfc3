# tests/conftest.py
"""
Shared pytest configuration and fixtures for the tabload test suite.
"""

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from tabload.metrics import LoaderMetrics, MetricsConfig

logging.basicConfig(level=logging.INFO)

# Control whether to use testcontainers
USE_TESTCONTAINERS = os.getenv('USE_TESTCONTAINERS', 'true').lower() == 'true'

# Disable Ryuk if not explicitly enabled (solves Docker connectivity issues)
if 'TESTCONTAINERS_RYUK_DISABLED' not in os.environ:
    os.environ['TESTCONTAINERS_RYUK_DISABLED'] = 'true'

if USE_TESTCONTAINERS:
    try:
        from testcontainers.postgres import PostgresContainer

        TESTCONTAINERS_AVAILABLE = True
    except ImportError:
        TESTCONTAINERS_AVAILABLE = False
        logging.warning('Testcontainers not available. Falling back to manual configuration.')
else:
    TESTCONTAINERS_AVAILABLE = False


def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line('markers', 'unit: Unit tests (fast, no external dependencies)')
    config.addinivalue_line('markers', 'integration: Integration tests (require databases)')
    config.addinivalue_line('markers', 'postgresql: Tests requiring PostgreSQL')


@pytest.fixture(autouse=True)
def disabled_metrics():
    """Keep loads from writing to the global Prometheus registry"""
    LoaderMetrics.reset_instance()
    metrics = LoaderMetrics(MetricsConfig(enabled=False))
    yield metrics
    LoaderMetrics.reset_instance()


def render_csv(header: Optional[List[str]], rows: List[List[str]], delimiter: str = ',') -> str:
    lines = []
    if header is not None:
        lines.append(delimiter.join(header))
    lines.extend(delimiter.join(row) for row in rows)
    return '\n'.join(lines) + ('\n' if lines else '')


@pytest.fixture
def write_csv(tmp_path) -> Callable[..., Path]:
    """Factory writing a CSV file under tmp_path and returning its path"""

    def _write(name: str, header: Optional[List[str]], rows: Optional[List[List[str]]] = None, **kwargs) -> Path:
        path = tmp_path / name
        path.write_text(render_csv(header, rows or [], **kwargs), encoding='utf-8')
        return path

    return _write


@pytest.fixture
def numbered_csv(write_csv) -> Callable[[int], Path]:
    """Factory for a [id, created_at, label] file with ``n`` rows, ids 1..n"""

    def _make(n: int, name: str = 'numbered.csv') -> Path:
        rows = [[str(i), f'2024-01-{(i % 28) + 1:02d}T00:00:00Z', f'row-{i}'] for i in range(1, n + 1)]
        return write_csv(name, ['id', 'created_at', 'label'], rows)

    return _make


@pytest.fixture
def sqlite_config(tmp_path):
    """SQLite configuration pointing at a fresh database file"""
    return {'database': str(tmp_path / 'out' / 'database.sqlite')}


@pytest.fixture(scope='session')
def postgresql_config():
    """PostgreSQL configuration from environment or defaults"""
    return {
        'host': os.getenv('POSTGRES_HOST', 'localhost'),
        'port': int(os.getenv('POSTGRES_PORT', '5432')),
        'database': os.getenv('POSTGRES_DB', 'test_tabload'),
        'user': os.getenv('POSTGRES_USER', 'postgres'),
        'password': os.getenv('POSTGRES_PASSWORD'),
        'max_connections': 5,
    }


@pytest.fixture(scope='session')
def postgres_container():
    """PostgreSQL container for integration tests"""
    if not TESTCONTAINERS_AVAILABLE:
        pytest.skip('Testcontainers not available')

    import time

    from testcontainers.core.waiting_utils import wait_for_logs

    container = PostgresContainer(image='postgres:13', username='test_user', password='test_pass', dbname='test_db')
    try:
        container.start()
    except Exception as e:
        pytest.skip(f'Could not start PostgreSQL container: {e}')

    wait_for_logs(container, 'database system is ready to accept connections', timeout=30)

    # PostgreSQL logs "ready" twice - wait a bit more to ensure fully ready
    time.sleep(2)

    yield container

    container.stop()


@pytest.fixture(scope='session')
def postgresql_test_config(request):
    """PostgreSQL configuration from testcontainer or environment"""
    if TESTCONTAINERS_AVAILABLE and USE_TESTCONTAINERS:
        postgres_container = request.getfixturevalue('postgres_container')
        return {
            'host': postgres_container.get_container_host_ip(),
            'port': postgres_container.get_exposed_port(5432),
            'database': 'test_db',
            'user': 'test_user',
            'password': 'test_pass',
            'max_connections': 5,
        }

    config = request.getfixturevalue('postgresql_config')
    if not config['password']:
        pytest.skip('PostgreSQL not configured (set POSTGRES_PASSWORD or enable testcontainers)')
    return config
