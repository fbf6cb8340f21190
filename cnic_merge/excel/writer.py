from __future__ import annotations

import logging
from collections.abc import Sequence
from io import BytesIO
from pathlib import Path

import pandas as pd

from ..errors import WriteError
from ..models.config_models import DEFAULT_SHEET_NAME
from ..models.row_data import OUTPUT_HEADER, OutputRow

"""Workbook serializer for the consolidated output."""

logger = logging.getLogger(__name__)

__all__ = [
    "serialize_table",
    "save_workbook",
]


def serialize_table(rows: Sequence[OutputRow], sheet_name: str = DEFAULT_SHEET_NAME) -> bytes:
    """Serialize output rows to a single-sheet .xlsx.

    The fixed header is written as row 1, columns in OUTPUT_HEADER order.
    An empty ``rows`` still yields a workbook holding the header row.

    Raises:
        WriteError: If pandas/openpyxl fail to build the workbook
    """
    try:
        df = pd.DataFrame([r.as_list() for r in rows], columns=list(OUTPUT_HEADER))
        buf = BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
    except Exception as e:
        raise WriteError(f"failed to write output workbook: {e}") from e
    content = buf.getvalue()
    logger.debug("serialized rows=%d bytes=%d", len(rows), len(content))
    return content


def save_workbook(content: bytes, path: Path) -> Path:
    """Write serialized output to ``path``, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as e:
        raise WriteError(f"failed to save {path}: {e}") from e
    return path
