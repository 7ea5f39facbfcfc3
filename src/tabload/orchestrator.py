"""
Runs the infer -> create -> stream sequence for each logical table.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from .errors import ConfigurationError, LoaderError, PartialLoadError
from .loaders.base import DataLoader
from .loaders.types import LoadConfig, LoadResult
from .metrics import LoaderMetrics, get_metrics
from .schema.definition import TableDefinitionGenerator
from .schema.inference import TypeInferenceEngine
from .sources.csv_source import CsvRowSource
from .streaming.pipeline import BatchInsertPipeline

# Tables loaded by run_directory() when no mapping is given
DEFAULT_TABLES: Dict[str, str] = {
    'customers': 'customers.csv',
    'organizations': 'organizations.csv',
}


@dataclass(frozen=True)
class LoadJob:
    """One source file destined for one table"""

    source_path: Path
    table_name: str

    def __post_init__(self):
        object.__setattr__(self, 'source_path', Path(self.source_path))


class LoadOrchestrator:
    """
    Loads a set of tables, each with its own loader instance.

    A failure in one table never stops the others. After every job was
    attempted, PartialLoadError is raised if any table failed; it carries the
    full list of results.

    Args:
        loader_factory: Zero-argument callable returning a new, unconnected DataLoader
        config: Batch, concurrency and source settings
    """

    def __init__(
        self,
        loader_factory: Callable[[], DataLoader],
        config: Optional[LoadConfig] = None,
        metrics: Optional[LoaderMetrics] = None,
    ) -> None:
        self.loader_factory = loader_factory
        self.config = config or LoadConfig()
        self.metrics = metrics or get_metrics()
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(self, jobs: Sequence[LoadJob]) -> List[LoadResult]:
        """
        Load every job and return results in job order.

        Raises:
            PartialLoadError: If at least one table failed
        """
        jobs = list(jobs)
        if not jobs:
            return []

        if self.config.table_workers > 1 and len(jobs) > 1:
            self.logger.info(f'Loading {len(jobs)} tables with {self.config.table_workers} workers')
            executor = ThreadPoolExecutor(max_workers=self.config.table_workers, thread_name_prefix='table')
            try:
                futures = [executor.submit(self.load_table, job) for job in jobs]
                results = [future.result() for future in futures]
            finally:
                executor.shutdown(wait=True)
        else:
            results = [self.load_table(job) for job in jobs]

        failed = [r for r in results if not r.success]
        if failed:
            raise PartialLoadError(results)
        return results

    def run_directory(
        self, directory: Union[str, Path], tables: Optional[Dict[str, str]] = None
    ) -> List[LoadResult]:
        """
        Load ``{table_name: file_name}`` pairs found in ``directory``.

        Raises:
            ConfigurationError: If the directory does not exist
            PartialLoadError: If at least one table failed
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ConfigurationError(f'Source directory not found: {directory}')

        mapping = tables if tables is not None else DEFAULT_TABLES
        jobs = [LoadJob(directory / file_name, table_name) for table_name, file_name in mapping.items()]
        return self.run(jobs)

    def load_table(self, job: LoadJob) -> LoadResult:
        """
        Load a single table. Never raises for load failures; they are
        reported in the returned LoadResult.
        """
        start_time = time.time()
        loader = self.loader_factory()
        self.logger.info(f"Loading {job.source_path} into '{job.table_name}'")

        try:
            result = self._load(loader, job, start_time)
        finally:
            try:
                loader.close()
            except Exception as e:
                self.logger.warning(f"Error closing connection for '{job.table_name}': {e}")

        status = 'succeeded' if result.success else 'failed'
        self.metrics.tables.labels(loader=loader.loader_type, status=status).inc()
        self.logger.info(str(result))
        return result

    def _load(self, loader: DataLoader, job: LoadJob, start_time: float) -> LoadResult:
        try:
            loader.connect()
        except Exception as e:
            return self._failed(loader, job, self._as_loader_error(e, 'Connection failed'), start_time)

        source = CsvRowSource(job.source_path, delimiter=self.config.delimiter, encoding=self.config.encoding)

        try:
            with source.open() as rows:
                schema = TypeInferenceEngine().infer(rows)
            TableDefinitionGenerator(loader).create(job.table_name, schema, self.config.if_exists)
        except Exception as e:
            return self._failed(loader, job, self._as_loader_error(e, 'Table setup failed'), start_time)

        try:
            with source.open() as rows:
                pipeline = BatchInsertPipeline(loader, job.table_name, schema, self.config, self.metrics)
                result = pipeline.run(rows)
        except Exception as e:
            return self._failed(loader, job, self._as_loader_error(e, 'Load failed'), start_time)

        result.duration = time.time() - start_time
        result.metadata['source'] = str(job.source_path)
        return result

    @staticmethod
    def _as_loader_error(error: Exception, context: str) -> LoaderError:
        if isinstance(error, LoaderError):
            return error
        wrapped = LoaderError(f'{context}: {error}')
        wrapped.__cause__ = error
        return wrapped

    def _failed(self, loader: DataLoader, job: LoadJob, error: LoaderError, start_time: float) -> LoadResult:
        self.logger.error(f"Table '{job.table_name}' failed: {error}")
        self.metrics.errors.labels(
            loader=loader.loader_type, error_type=type(error).__name__, table=job.table_name
        ).inc()
        result = loader.failed_result(job.table_name, error, duration=time.time() - start_time)
        result.metadata['source'] = str(job.source_path)
        return result
