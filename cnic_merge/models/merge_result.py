from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .row_data import OutputRow

"""Result models for a merge run."""

__all__ = [
    "IndexStats",
    "MergeResult",
]


@dataclass(frozen=True)
class IndexStats:
    """Counters of the index-build pass."""
    scanned_rows: int  # data rows after the header offset
    indexed_keys: int  # distinct CNICs in the lookup
    skipped_rows: int  # short/garbage CNIC or missing guarantor name
    replaced_entries: int  # rows that displaced an older loan cycle


@dataclass(frozen=True)
class MergeResult:
    """Everything a host needs after a successful run.

    Only ever built for a completed run; failed or cancelled runs never
    expose a partially built output.
    """
    rows: list[OutputRow]
    content: bytes  # serialized workbook
    file_name: str
    guarantor_rows: int
    client_rows: int
    index: IndexStats
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)

    @property
    def matched_rows(self) -> int:
        return len(self.rows)

    @property
    def unmatched_rows(self) -> int:
        return self.client_rows - len(self.rows)
