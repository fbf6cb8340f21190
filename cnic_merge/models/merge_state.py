from __future__ import annotations

from enum import Enum

"""Merge run lifecycle.

State transitions:
    idle → reading → index_building → joining → writing → done
    failed is reachable from any non-terminal state; from failed (and done)
    the only way forward is a new run, which starts again at idle.
"""

__all__ = [
    "MergeState",
    "ACTIVE_STATES",
    "PHASE_PERCENT",
    "PASSES_PERCENT",
]


class MergeState(Enum):
    """Status of a MergeEngine run.

    - IDLE: no run in flight, or a run was cancelled
    - READING: loading and parsing both workbooks
    - INDEX_BUILDING: scanning the guarantor sheet into the CNIC lookup
    - JOINING: matching active clients against the lookup
    - WRITING: serializing the consolidated workbook
    - DONE: output produced
    - FAILED: fatal error, output discarded
    """
    IDLE = "idle"
    READING = "reading"
    INDEX_BUILDING = "index_building"
    JOINING = "joining"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


ACTIVE_STATES = frozenset(
    {MergeState.READING, MergeState.INDEX_BUILDING, MergeState.JOINING, MergeState.WRITING}
)

# (start, end) percent band owned by the phases with a fixed share of the scale
PHASE_PERCENT: dict[MergeState, tuple[int, int]] = {
    MergeState.READING: (0, 8),
    MergeState.WRITING: (95, 100),
}
# Shared by index building and joining, split in proportion to their row counts
PASSES_PERCENT: tuple[int, int] = (8, 95)
