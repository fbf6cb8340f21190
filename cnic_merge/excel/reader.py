from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta
from io import BytesIO
from typing import Any

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.datetime import to_excel

from ..errors import ParseError
from ..models.row_data import RawTable

"""Workbook parser.

Reads the first sheet of an .xlsx or .xls file into an ordered list of raw
rows. No header handling happens here: header rows are skipped later by a
fixed offset. Date cells are returned as spreadsheet serial numbers, not as
formatted text, and every row of the sheet is kept (blank rows included) so
fixed offsets stay aligned.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "parse_workbook",
    "detect_format",
    "raw_cell",
]

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def detect_format(data: bytes) -> str | None:
    """Return "xlsx", "xls" or None from the container signature."""
    if data.startswith(XLSX_MAGIC):
        return "xlsx"
    if data.startswith(XLS_MAGIC):
        return "xls"
    return None


def raw_cell(value: Any) -> Any:
    """Normalize one cell value to str | int | float | None."""
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer() and math.isfinite(value):
            return int(value)
        return value
    if isinstance(value, (datetime, date, time, timedelta)):
        serial = to_excel(value)
        if isinstance(serial, float) and serial.is_integer():
            return int(serial)
        return serial
    if isinstance(value, str):
        return value if value != "" else None
    return value


def _trim(row: list[Any]) -> list[Any]:
    end = len(row)
    while end and row[end - 1] is None:
        end -= 1
    return row[:end]


def _read_xlsx(data: bytes) -> RawTable:
    wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return [_trim([raw_cell(v) for v in row]) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _read_xls(data: bytes) -> RawTable:
    book = xlrd.open_workbook(file_contents=data)
    sheet = book.sheet_by_index(0)
    # xlrd keeps date cells as float serials already
    return [_trim([raw_cell(v) for v in sheet.row_values(r)]) for r in range(sheet.nrows)]


def parse_workbook(data: bytes, source: str = "<workbook>") -> RawTable:
    """Parse the first sheet of a workbook.

    Parameters
    ----------
    data: raw file bytes
    source: label used in errors (file name or report name)

    Raises
    ------
    ParseError: the bytes are empty, not a spreadsheet container, or corrupt
    """
    if not data:
        raise ParseError(source, "file is empty")
    fmt = detect_format(data)
    if fmt is None:
        raise ParseError(source, "not an .xlsx or .xls workbook")
    try:
        table = _read_xlsx(data) if fmt == "xlsx" else _read_xls(data)
    except Exception as e:
        raise ParseError(source, f"failed to parse workbook: {e}") from e
    if fmt == "xlsx" and not table:
        logger.warning("%s: first sheet is empty", source)
    logger.debug("parsed %s format=%s rows=%d", source, fmt, len(table))
    return table
