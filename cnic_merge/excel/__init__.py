from .reader import parse_workbook
from .writer import save_workbook, serialize_table

__all__ = ["parse_workbook", "save_workbook", "serialize_table"]
