"""
Metrics instrumentation for tabload loads.

This module provides observability metrics using Prometheus client.
Metrics can be exported via HTTP endpoint.

Usage:
    from tabload.metrics import get_metrics

    metrics = get_metrics()
    metrics.rows_loaded.labels(loader='sqlite', table='customers').inc(100)

    from tabload.metrics import start_metrics_server
    start_metrics_server(port=8000)
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest, start_http_server

# Write phase - I/O bound, varies by target
WRITE_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)  # 1ms to 5s

BATCH_SIZE_BUCKETS = (1, 10, 50, 100, 500, 1000, 5000, 10000)


@dataclass
class MetricsConfig:
    """Configuration for metrics collection.

    Attributes:
        enabled: Whether metrics collection is enabled
        namespace: Prefix for all metric names (default: 'tabload')
        subsystem: Optional subsystem name for grouping metrics
    """

    enabled: bool = True
    namespace: str = 'tabload'
    subsystem: str = ''


class NullMetric:
    """No-op metric used when metrics are disabled."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    def labels(self, *args: Any, **kwargs: Any) -> 'NullMetric':
        return self

    def inc(self, amount: float = 1) -> None:
        pass

    def observe(self, value: float) -> None:
        pass


class LoaderMetrics:
    """Central metrics registry for table loads.

    - Rows observed in sources and rows committed to tables (counters)
    - Batches by outcome (counter)
    - Batch sizes and insert latency (histograms)
    - Tables by outcome and errors by type (counters)

    Thread-safe singleton implementation.
    """

    _instance: Optional['LoaderMetrics'] = None
    _lock = threading.Lock()

    _METRIC_ATTRIBUTES = (
        'rows_observed',
        'rows_loaded',
        'batches',
        'batch_sizes',
        'batch_latency',
        'tables',
        'errors',
    )

    def __new__(cls, config: Optional[MetricsConfig] = None) -> 'LoaderMetrics':
        """Singleton pattern with lazy initialization."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._initialized = False
                    cls._instance = instance
        return cls._instance

    def __init__(self, config: Optional[MetricsConfig] = None) -> None:
        if self._initialized:
            return

        self._config = config or MetricsConfig()
        self._setup_metrics()
        self._initialized = True

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def _setup_metrics(self) -> None:
        """Set up all Prometheus metrics."""
        if not self._config.enabled:
            for attr in self._METRIC_ATTRIBUTES:
                setattr(self, attr, NullMetric())
            return

        ns = self._config.namespace
        ss = self._config.subsystem

        self.rows_observed: Counter = self._get_or_create_metric(
            Counter,
            name='rows_observed_total',
            documentation='Total number of data rows read from sources',
            labelnames=['loader', 'table'],
            namespace=ns,
            subsystem=ss,
        )

        self.rows_loaded: Counter = self._get_or_create_metric(
            Counter,
            name='rows_loaded_total',
            documentation='Total number of rows committed to tables',
            labelnames=['loader', 'table'],
            namespace=ns,
            subsystem=ss,
        )

        self.batches: Counter = self._get_or_create_metric(
            Counter,
            name='batches_total',
            documentation='Total number of batches submitted, by outcome',
            labelnames=['loader', 'table', 'status'],
            namespace=ns,
            subsystem=ss,
        )

        self.batch_sizes: Histogram = self._get_or_create_metric(
            Histogram,
            name='batch_size_rows',
            documentation='Number of rows per batch',
            labelnames=['loader', 'table'],
            namespace=ns,
            subsystem=ss,
            buckets=BATCH_SIZE_BUCKETS,
        )

        self.batch_latency: Histogram = self._get_or_create_metric(
            Histogram,
            name='batch_insert_latency_seconds',
            documentation='Time spent converting and inserting one batch',
            labelnames=['loader'],
            namespace=ns,
            subsystem=ss,
            buckets=WRITE_BUCKETS,
        )

        self.tables: Counter = self._get_or_create_metric(
            Counter,
            name='tables_total',
            documentation='Total number of table loads, by outcome',
            labelnames=['loader', 'status'],
            namespace=ns,
            subsystem=ss,
        )

        self.errors: Counter = self._get_or_create_metric(
            Counter,
            name='errors_total',
            documentation='Total number of errors',
            labelnames=['loader', 'error_type', 'table'],
            namespace=ns,
            subsystem=ss,
        )

    def _get_or_create_metric(self, metric_class: type, name: str, **kwargs) -> Any:
        """Get an existing metric from the registry or create a new one.

        Metrics may already be registered (e.g. after reset_instance() in
        tests); the registered collector is returned instead of failing with
        a duplicate registration error.
        """
        ns = kwargs.get('namespace', '')
        ss = kwargs.get('subsystem', '')

        # Prometheus strips the _total suffix from Counter names
        metric_name = name
        if metric_class == Counter and name.endswith('_total'):
            metric_name = name[:-6]
        full_name = '_'.join(filter(None, [ns, ss, metric_name]))

        try:
            return metric_class(name=name, **kwargs)
        except ValueError as e:
            if 'Duplicated timeseries' in str(e) and full_name in REGISTRY._names_to_collectors:
                return REGISTRY._names_to_collectors[full_name]
            raise

    @contextmanager
    def track_batch(self, loader: str, table: str) -> Iterator[Dict[str, Any]]:
        """Context manager to track one batch insert's duration and outcome.

        Usage:
            with metrics.track_batch('sqlite', 'customers') as ctx:
                ctx['records'] = loader.load_batch(batch, 'customers')

        Yields:
            Context dict where the caller sets 'records' to the committed row count
        """
        ctx: Dict[str, Any] = {'records': 0, 'error': None}
        start_time = time.perf_counter()

        try:
            yield ctx
        except Exception as e:
            ctx['error'] = type(e).__name__
            self.errors.labels(loader=loader, error_type=type(e).__name__, table=table).inc()
            self.batches.labels(loader=loader, table=table, status='failed').inc()
            raise
        else:
            self.batches.labels(loader=loader, table=table, status='succeeded').inc()
            if ctx['records'] > 0:
                self.rows_loaded.labels(loader=loader, table=table).inc(ctx['records'])
                self.batch_sizes.labels(loader=loader, table=table).observe(ctx['records'])
        finally:
            self.batch_latency.labels(loader=loader).observe(time.perf_counter() - start_time)

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (useful for testing).

        Unregisters metrics from the Prometheus registry so they can be
        registered again under the same names.
        """
        with cls._lock:
            if cls._instance is not None:
                for attr in cls._METRIC_ATTRIBUTES:
                    metric = getattr(cls._instance, attr, None)
                    if metric is not None and not isinstance(metric, NullMetric):
                        try:
                            REGISTRY.unregister(metric)
                        except KeyError:
                            pass  # not registered
            cls._instance = None


def get_metrics(config: Optional[MetricsConfig] = None) -> LoaderMetrics:
    """Get the global metrics instance.

    Args:
        config: Optional configuration (only used on first call)
    """
    return LoaderMetrics(config)


def start_metrics_server(port: int = 8000, addr: str = '') -> None:
    """Start HTTP server to expose Prometheus metrics."""
    start_http_server(port, addr)


def generate_metrics_text() -> bytes:
    """Generate Prometheus metrics in text format."""
    return generate_latest(REGISTRY)
