from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the failure log.

One record per fatal merge failure, written as a JSON Line with a fixed set of
keys: timestamp, source, kind, message.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured failure record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Input label the failure is attributed to, or "<RUN>"
        kind: Machine-readable failure kind (parse, write, missing_input, ...)
        message: Human-readable description
    """
    timestamp: str
    source: str
    kind: str
    message: str

    @staticmethod
    def create(source: str, kind: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(timestamp=ts, source=source, kind=kind, message=message)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
