from __future__ import annotations

"""Failure taxonomy shared by the parser, the engine and the serializer.

Every fatal condition of a merge run is a ``MergeError`` carrying a
human-readable message and a machine-distinguishable ``kind``. Row-level data
problems are never raised; they have fallbacks inside the matching passes.
"""

__all__ = [
    "MergeError",
    "ParseError",
    "MissingInputError",
    "WriteError",
    "MergeCancelled",
]


class MergeError(Exception):
    """Base class for merge run failures."""

    kind = "internal"

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ParseError(MergeError):
    """Raised when an input file cannot be read as a workbook."""

    kind = "parse"

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class MissingInputError(MergeError):
    """Raised before a run starts when one or both inputs are absent."""

    kind = "missing_input"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"missing input file(s): {', '.join(missing)}")
        self.missing = missing


class WriteError(MergeError):
    """Raised when the output workbook cannot be produced."""

    kind = "write"


class MergeCancelled(MergeError):
    """Raised at a yield point after cancellation was requested."""

    kind = "cancelled"

    def __init__(self, message: str = "merge cancelled") -> None:
        super().__init__(message)
