from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the guarantor merge tool.

Column maps encode the layout contract agreed with the report producers:
zero-based column indices, no header validation. A misaligned sheet silently
yields wrong data in a column rather than an error.
"""

__all__ = [
    "GuarantorColumns",
    "ActiveClientColumns",
    "DatabaseConfig",
    "MergeConfig",
    "DEFAULT_OUTPUT_FILE_NAME",
    "DEFAULT_SHEET_NAME",
]

DEFAULT_OUTPUT_FILE_NAME = "Updated Guarantor Info.xlsx"
DEFAULT_SHEET_NAME = "GuarantorInfoData"


@dataclass(frozen=True)
class GuarantorColumns:
    """Column indices of the Guarantor Info sheet (Report 24)."""
    cnic: int = 3  # D
    address: int = 6  # G
    loan_amount: int = 8  # I
    loan_cycle: int = 10  # K
    name: int = 14  # O
    cell: int = 16  # Q


@dataclass(frozen=True)
class ActiveClientColumns:
    """Column indices of the Active Client sheet (Report 12)."""
    client_id: int = 1  # B
    name: int = 2  # C
    spouse: int = 3  # D
    product: int = 5  # F
    co_name: int = 6  # G
    cell_no: int = 9  # J
    cnic: int = 13  # N, join key
    area: int = 15  # P
    maturity_date: int = 16  # Q
    branch: int = 18  # S
    last_paid: int = 20  # U


@dataclass(frozen=True)
class DatabaseConfig:
    """Record store connection fallback.

    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    table: str = "guarantor_records"


@dataclass(frozen=True)
class MergeConfig:
    """Root configuration of a merge run."""
    guarantor_columns: GuarantorColumns = field(default_factory=GuarantorColumns)
    client_columns: ActiveClientColumns = field(default_factory=ActiveClientColumns)
    guarantor_start_row: int = 2  # rows before this are a header block
    client_start_row: int = 2
    yield_every: int = 500  # rows between progress updates / event loop yields
    min_id_length: int = 13
    output_file_name: str = DEFAULT_OUTPUT_FILE_NAME
    sheet_name: str = DEFAULT_SHEET_NAME
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
