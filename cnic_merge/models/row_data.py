from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from .config_models import ActiveClientColumns, GuarantorColumns

"""Typed row records for both input sheets and the consolidated output.

Raw rows are ordered cell lists; these records pick the contract columns out
of them once so the matching passes never index raw rows by position.
"""

__all__ = [
    "RawRow",
    "RawTable",
    "cell_at",
    "is_blank",
    "GuarantorRow",
    "ActiveClientRow",
    "LookupEntry",
    "OutputRow",
    "OUTPUT_HEADER",
]

RawRow = Sequence[Any]
RawTable = list[list[Any]]

OUTPUT_HEADER: tuple[str, ...] = (
    "Client ID",
    "Name",
    "Spouse",
    "Product",
    "CO Name",
    "Cell No",
    "Area",
    "Maturity Date",
    "Branch",
    "Last Amount Paid",
    "Address",
    "Loan Amount",
    "Loan Cycle",
    "Guarantor Name",
    "Guarantor Cell",
)


def cell_at(row: RawRow, index: int) -> Any:
    """Return the cell at ``index`` or None when the row is shorter."""
    if 0 <= index < len(row):
        return row[index]
    return None


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


@dataclass(frozen=True)
class GuarantorRow:
    """One data row of the Guarantor Info sheet."""
    row_index: int  # zero-based position in the raw table
    cnic: Any
    address: Any
    loan_amount: Any
    loan_cycle: Any
    name: Any
    cell: Any

    @classmethod
    def from_raw(cls, row_index: int, row: RawRow, columns: GuarantorColumns) -> GuarantorRow:
        return cls(
            row_index=row_index,
            cnic=cell_at(row, columns.cnic),
            address=cell_at(row, columns.address),
            loan_amount=cell_at(row, columns.loan_amount),
            loan_cycle=cell_at(row, columns.loan_cycle),
            name=cell_at(row, columns.name),
            cell=cell_at(row, columns.cell),
        )


@dataclass(frozen=True)
class ActiveClientRow:
    """One data row of the Active Client sheet."""
    row_index: int
    client_id: Any
    name: Any
    spouse: Any
    product: Any
    co_name: Any
    cell_no: Any
    cnic: Any
    area: Any
    maturity_date: Any
    branch: Any
    last_paid: Any

    @classmethod
    def from_raw(cls, row_index: int, row: RawRow, columns: ActiveClientColumns) -> ActiveClientRow:
        return cls(
            row_index=row_index,
            client_id=cell_at(row, columns.client_id),
            name=cell_at(row, columns.name),
            spouse=cell_at(row, columns.spouse),
            product=cell_at(row, columns.product),
            co_name=cell_at(row, columns.co_name),
            cell_no=cell_at(row, columns.cell_no),
            cnic=cell_at(row, columns.cnic),
            area=cell_at(row, columns.area),
            maturity_date=cell_at(row, columns.maturity_date),
            branch=cell_at(row, columns.branch),
            last_paid=cell_at(row, columns.last_paid),
        )


@dataclass(frozen=True)
class LookupEntry:
    """Best-known guarantor row for one normalized CNIC."""
    row_index: int
    cycle: int
    row: GuarantorRow


@dataclass(frozen=True)
class OutputRow:
    """One consolidated record; field order matches OUTPUT_HEADER."""
    client_id: Any
    name: Any
    spouse: Any
    product: Any
    co_name: Any
    cell_no: Any
    area: Any
    maturity_date: str
    branch: Any
    last_amount_paid: Any
    address: Any
    loan_amount: Any
    loan_cycle: Any
    guarantor_name: Any
    guarantor_cell: Any

    def as_list(self) -> list[Any]:
        return [
            self.client_id,
            self.name,
            self.spouse,
            self.product,
            self.co_name,
            self.cell_no,
            self.area,
            self.maturity_date,
            self.branch,
            self.last_amount_paid,
            self.address,
            self.loan_amount,
            self.loan_cycle,
            self.guarantor_name,
            self.guarantor_cell,
        ]

    def as_record(self) -> dict[str, Any]:
        """Header-keyed mapping, the shape the record store persists."""
        return dict(zip(OUTPUT_HEADER, self.as_list()))
