"""Domain models for the guarantor merge tool.

Configuration, typed row records, run state and run results.
"""

from .config_models import (
    ActiveClientColumns,
    DatabaseConfig,
    GuarantorColumns,
    MergeConfig,
)
from .error_record import ErrorRecord
from .merge_result import IndexStats, MergeResult
from .merge_state import ACTIVE_STATES, MergeState
from .row_data import (
    OUTPUT_HEADER,
    ActiveClientRow,
    GuarantorRow,
    LookupEntry,
    OutputRow,
    RawTable,
)

__all__ = [
    # Configuration models
    "ActiveClientColumns",
    "DatabaseConfig",
    "GuarantorColumns",
    "MergeConfig",
    # Row records
    "ActiveClientRow",
    "GuarantorRow",
    "LookupEntry",
    "OutputRow",
    "OUTPUT_HEADER",
    "RawTable",
    # Run models
    "ACTIVE_STATES",
    "ErrorRecord",
    "IndexStats",
    "MergeResult",
    "MergeState",
]
