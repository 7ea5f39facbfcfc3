"""
Streaming batch insertion with bounded memory and ordered completion.

Rows are accumulated into batches of ``LoadConfig.batch_size``. Each sealed
batch is handed to a ThreadPoolExecutor so the reader can keep going while the
store writes; at most ``max_in_flight`` batches are unresolved at a time.
In-flight inserts are kept in a FIFO and always resolved oldest-first, so
completion of batch n+1 is never observed before batch n. The pipeline is done
only when the source is exhausted AND the FIFO is empty.
"""

import logging
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Deque, Iterable, List, Optional, Tuple

import pyarrow as pa

from ..errors import BatchInsertError, SourceReadError
from ..loaders.base import DataLoader
from ..loaders.types import LoadConfig, LoadResult
from ..metrics import LoaderMetrics, get_metrics
from ..schema.types import TableSchema
from ..sources.csv_source import Row
from .types import BatchSpec, SealedBatch


class BatchInsertPipeline:
    """
    Streams every row of one source into one table.

    Instances are single-use: counters and in-flight state belong to one run.
    """

    def __init__(
        self,
        loader: DataLoader,
        table_name: str,
        schema: TableSchema,
        config: Optional[LoadConfig] = None,
        metrics: Optional[LoaderMetrics] = None,
    ) -> None:
        self.loader = loader
        self.table_name = table_name
        self.schema = schema
        self.config = config or LoadConfig()
        self.metrics = metrics or get_metrics()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.arrow_schema = schema.to_arrow()

        self.rows_observed = 0
        self.rows_loaded = 0
        self.batches_submitted = 0
        self.completed: List[BatchSpec] = []  # In the order completions were reported
        self.batch_errors: List[BatchInsertError] = []
        self.source_error: Optional[SourceReadError] = None

        self._in_flight: Deque[Tuple[BatchSpec, Future]] = deque()
        self._started = False

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def run(self, rows: Iterable[Row]) -> LoadResult:
        """
        Insert all rows and wait for every submitted batch to resolve.

        A failing batch is recorded and the remaining batches still run. A
        SourceReadError stops reading; rows buffered since the last sealed
        batch are not submitted.

        Returns:
            LoadResult for the table, built after the last insert resolved
        """
        if self._started:
            raise RuntimeError('BatchInsertPipeline instances are single-use')
        self._started = True

        start_time = time.time()
        executor = ThreadPoolExecutor(
            max_workers=self.config.insert_workers, thread_name_prefix=f'insert-{self.table_name}'
        )
        buffer: List[Row] = []

        try:
            iterator = iter(rows)
            while True:
                try:
                    row = next(iterator)
                except StopIteration:
                    break
                except SourceReadError as e:
                    self.source_error = e
                    self.logger.error(f"Stopped reading rows for '{self.table_name}': {e}")
                    break

                self.rows_observed += 1
                buffer.append(row)

                if len(buffer) >= self.config.batch_size:
                    self._submit(executor, buffer)
                    buffer = []

            if buffer and self.source_error is None:
                self._submit(executor, buffer)
            elif buffer:
                self.logger.warning(f'Discarding {len(buffer)} buffered rows after source error')
        finally:
            # Never leave an insert running past this point
            self._drain()
            executor.shutdown(wait=True)

        duration = time.time() - start_time
        self.metrics.rows_observed.labels(loader=self.loader.loader_type, table=self.table_name).inc(
            self.rows_observed
        )
        return self._build_result(duration)

    def _submit(self, executor: ThreadPoolExecutor, rows: List[Row]) -> None:
        """Seal ``rows`` as the next batch and dispatch its insert"""
        spec = BatchSpec(
            index=self.batches_submitted,
            first_row=self.rows_observed - len(rows) + 1,
            last_row=self.rows_observed,
        )

        while len(self._in_flight) >= self.config.max_in_flight:
            self._resolve_oldest()

        future = executor.submit(self._insert, SealedBatch(spec, rows))
        self._in_flight.append((spec, future))
        self.batches_submitted += 1
        self.logger.debug(f'Submitted batch {spec.index} (rows {spec.first_row}-{spec.last_row})')

    def _insert(self, batch: SealedBatch) -> int:
        """Worker body: convert one batch to Arrow and insert it"""
        with self.metrics.track_batch(self.loader.loader_type, self.table_name) as ctx:
            record_batch = self.to_record_batch(batch.rows)
            ctx['records'] = self.loader.load_batch(record_batch, self.table_name)
        return ctx['records']

    def _resolve_oldest(self) -> None:
        spec, future = self._in_flight.popleft()
        try:
            rows_loaded = future.result()
        except Exception as e:
            error = BatchInsertError(self.table_name, spec.index, spec.first_row, spec.last_row, str(e))
            error.__cause__ = e
            self.batch_errors.append(error)
            self.logger.error(str(error))
        else:
            self.rows_loaded += rows_loaded
            self.logger.debug(f'Batch {spec.index} committed {rows_loaded} rows')
        self.completed.append(spec)

    def _drain(self) -> None:
        while self._in_flight:
            self._resolve_oldest()

    def to_record_batch(self, rows: List[Row]) -> pa.RecordBatch:
        """Convert raw text rows to a typed Arrow RecordBatch.

        Raises:
            ValueError: If a value does not conform to its locked column type
        """
        arrays = []
        for column, field in zip(self.schema, self.arrow_schema):
            try:
                values = [column.type.parse_value(row.get(column.name)) for row in rows]
            except ValueError as e:
                raise ValueError(f"Column '{column.name}' ({column.type.value}): {e}") from e
            arrays.append(pa.array(values, type=field.type))
        return pa.RecordBatch.from_arrays(arrays, schema=self.arrow_schema)

    def _build_result(self, duration: float) -> LoadResult:
        error = self.source_error or (self.batch_errors[0] if self.batch_errors else None)

        if error is None:
            self.logger.info(f"Inserted {self.rows_loaded} rows into '{self.table_name}' in {duration:.2f}s")
        else:
            self.logger.warning(
                f"Partially loaded '{self.table_name}': {self.rows_loaded} of {self.rows_observed} rows inserted, "
                f'{len(self.batch_errors)} failed batches'
            )

        return LoadResult(
            rows_loaded=self.rows_loaded,
            duration=duration,
            ops_per_second=round(self.rows_loaded / duration, 2) if duration > 0 else 0,
            table_name=self.table_name,
            loader_type=self.loader.loader_type,
            success=error is None,
            rows_observed=self.rows_observed,
            batches_submitted=self.batches_submitted,
            error=error,
            batch_errors=list(self.batch_errors),
            metadata={
                'batch_size': self.config.batch_size,
                'batches_failed': len(self.batch_errors),
                'columns': len(self.schema),
            },
        )
