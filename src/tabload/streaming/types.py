"""
Types describing sealed batches as they move through the insert pipeline.
"""

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class BatchSpec:
    """Position of a sealed batch within its source.

    Row numbers are 1-based data row positions (the header is not counted).
    """

    index: int
    first_row: int
    last_row: int

    @property
    def row_count(self) -> int:
        return self.last_row - self.first_row + 1

    def to_dict(self) -> Dict[str, Any]:
        return {'index': self.index, 'first_row': self.first_row, 'last_row': self.last_row}


@dataclass
class SealedBatch:
    """A batch that accepts no further rows"""

    spec: BatchSpec
    rows: List[Dict[str, Any]]
