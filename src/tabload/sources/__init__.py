"""Row sources that feed inference and batch insertion."""

from .csv_source import CsvRowSource, Row, RowStream

__all__ = ['CsvRowSource', 'Row', 'RowStream']
