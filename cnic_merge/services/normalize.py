from __future__ import annotations

import math
import re
from datetime import datetime, timedelta
from typing import Any

"""Cell-level normalization used by the matching passes.

All functions here are total: malformed cells fall back to a defined value
instead of raising, so a single bad row can never abort a merge.
"""

__all__ = [
    "normalize_id",
    "parse_cycle",
    "format_spreadsheet_date",
    "cell_text",
    "format_phone_number",
]

_NON_DIGIT = re.compile(r"[^0-9]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Day zero of the spreadsheet serial scheme
SPREADSHEET_EPOCH = datetime(1899, 12, 30)
# Serial of the fictitious 29-Feb-1900 inherited from Lotus 1-2-3
LEAP_BUG_SERIAL = 60
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def cell_text(value: Any) -> str:
    """Render a raw cell as text.

    None and NaN become "", integral floats lose their ".0" so numeric CNIC
    cells read back as the digits that were typed.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
    return str(value)


def normalize_id(raw: Any) -> str:
    """Strip every non-digit from a CNIC cell.

    >>> normalize_id("12345-6789012-3")
    '1234567890123'
    >>> normalize_id(None)
    ''
    """
    return _NON_DIGIT.sub("", cell_text(raw)).strip()


def parse_cycle(raw: Any) -> int:
    """Parse a loan cycle cell the way a lenient integer parse would.

    Leading whitespace, an optional sign and a run of digits are read; any
    trailing text is ignored. Cells without a leading integer yield 0.

    >>> parse_cycle("3")
    3
    >>> parse_cycle("12 (renewed)")
    12
    >>> parse_cycle("n/a")
    0
    """
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and math.isfinite(raw):
        return int(raw)
    m = _LEADING_INT.match(cell_text(raw))
    if m is None:
        return 0
    return int(m.group(1))


def _is_serial(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 1


def format_spreadsheet_date(serial: Any) -> str:
    """Format a spreadsheet date serial as DD-Mon-YYYY.

    Non-numeric input, non-finite numbers and serials below 1 are returned
    as text unchanged. Serials above 60 get an extra day removed to step
    over the non-existent 29-Feb-1900.

    >>> format_spreadsheet_date(45000)
    '13-Mar-2023'
    >>> format_spreadsheet_date("N/A")
    'N/A'
    """
    if not _is_serial(serial):
        return "" if serial is None else str(serial)

    days = serial - 1
    if serial > LEAP_BUG_SERIAL:
        days -= 1
    try:
        d = SPREADSHEET_EPOCH + timedelta(days=days)
    except OverflowError:
        return str(serial)
    return f"{d.day:02d}-{MONTHS[d.month - 1]}-{d.year:04d}"


def format_phone_number(phone: Any) -> str | None:
    """Return an international (92-prefixed) digit string for dial links.

    Blank cells and "-" yield None. Local 10/11 digit numbers get the
    leading trunk zero replaced by 92.

    >>> format_phone_number("0300-1111111")
    '923001111111'
    >>> format_phone_number("-") is None
    True
    """
    text = cell_text(phone).strip()
    if not text or text == "-":
        return None
    cleaned = _NON_DIGIT.sub("", text)
    if not cleaned:
        return None
    if len(cleaned) in (10, 11):
        return f"92{cleaned[1:]}" if cleaned.startswith("0") else f"92{cleaned}"
    return cleaned if cleaned.startswith("92") else f"92{cleaned}"
