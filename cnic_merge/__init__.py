"""Guarantor / active-client consolidation tool.

Matches the Guarantor Info report against the Active Client report on a
normalized CNIC and exports a single consolidated workbook.
"""

__version__ = "0.3.0"
