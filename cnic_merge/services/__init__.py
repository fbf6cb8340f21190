from .engine import MergeEngine
from .normalize import format_spreadsheet_date, normalize_id, parse_cycle

__all__ = ["MergeEngine", "format_spreadsheet_date", "normalize_id", "parse_cycle"]
