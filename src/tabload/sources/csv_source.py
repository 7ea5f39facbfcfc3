"""
Delimited text row source.

Each call to CsvRowSource.open() starts a fresh pass over the file, so the
same source can be read once for schema inference and once for loading.
Rows are produced lazily; at most one row is held by the reader.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Union

from ..errors import SourceReadError

Row = Dict[str, str]

logger = logging.getLogger(__name__)


class RowStream:
    """One pass over a delimited text file.

    The header row is consumed on construction and exposed as ``columns``;
    iteration yields one Row per data line. Blank lines are skipped.
    """

    def __init__(self, path: Path, delimiter: str = ',', encoding: str = 'utf-8-sig') -> None:
        self.path = path
        self.rows_read = 0
        self._file: Optional[TextIO] = None

        try:
            self._file = open(path, 'r', encoding=encoding, newline='')
            self._reader = csv.reader(self._file, delimiter=delimiter)
            header = next(self._reader, None)
        except FileNotFoundError as e:
            raise SourceReadError(str(path), 'file not found') from e
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            self.close()
            raise SourceReadError(str(path), str(e), 1) from e

        self.columns: List[str] = header or []

    @property
    def line_number(self) -> int:
        return self._reader.line_num

    def __iter__(self) -> 'RowStream':
        return self

    def __next__(self) -> Row:
        if self._file is None:
            raise StopIteration

        try:
            values = next(self._reader)
            while not values:
                values = next(self._reader)
        except StopIteration:
            self.close()
            raise
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise SourceReadError(str(self.path), str(e), self.line_number) from e

        if len(values) != len(self.columns):
            raise SourceReadError(
                str(self.path),
                f'expected {len(self.columns)} fields, got {len(values)}',
                self.line_number,
            )

        self.rows_read += 1
        return dict(zip(self.columns, values))

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> 'RowStream':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class CsvRowSource:
    """Restartable, header-having delimited text source"""

    def __init__(self, path: Union[str, Path], delimiter: str = ',', encoding: str = 'utf-8-sig') -> None:
        self.path = Path(path)
        self.delimiter = delimiter
        self.encoding = encoding

    def open(self) -> RowStream:
        """Start a new pass over the file.

        Raises:
            SourceReadError: If the file cannot be opened or its header cannot be read
        """
        logger.debug(f'Opening {self.path}')
        return RowStream(self.path, self.delimiter, self.encoding)

    def __repr__(self) -> str:
        return f'CsvRowSource({str(self.path)!r}, delimiter={self.delimiter!r})'
