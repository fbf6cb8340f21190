#!/usr/bin/env python3
"""Generate synthetic Guarantor Info (Report 24) and Active Client (Report 12) workbooks.

Both files follow the fixed report layout the merge expects:
- Row 1: Title row
- Row 2: Header row
- Row 3+: Data rows

A share of the active clients reuse guarantor CNICs (``--match-ratio``) and
guarantor CNICs repeat across loan cycles, so the output exercises both the
join and the latest-cycle selection.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

GUARANTOR_WIDTH = 17
CLIENT_WIDTH = 21

FIRST_NAMES = ["Ali", "Sana", "Ahmed", "Ayesha", "Bilal", "Fatima", "Usman", "Hina", "Imran", "Zainab"]
LAST_NAMES = ["Khan", "Ahmed", "Malik", "Hussain", "Qureshi", "Sheikh", "Butt", "Raza"]
BRANCHES = ["Main Branch", "Gulberg", "Saddar", "Model Town", "Johar Town"]
PRODUCTS = ["Enterprise Loan", "Livestock Loan", "Housing Loan", "Education Loan"]


def _cnic(n: int) -> str:
    digits = f"{3520200000000 + n:013d}"
    return f"{digits[:5]}-{digits[5:12]}-{digits[12]}"


def _phone(rng: np.random.Generator) -> str:
    return f"03{rng.integers(0, 50):02d}-{rng.integers(0, 10_000_000):07d}"


def _name(rng: np.random.Generator) -> str:
    return f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"


def generate_guarantor_rows(rows: int, rng: np.random.Generator) -> list[list[Any]]:
    """Guarantor rows over ``rows // 2`` distinct CNICs, each seen with several loan cycles."""
    distinct = max(1, rows // 2)
    out: list[list[Any]] = []
    for i in range(rows):
        row: list[Any] = [""] * GUARANTOR_WIDTH
        row[0] = i + 1
        row[3] = _cnic(int(rng.integers(0, distinct)))
        row[6] = f"House {rng.integers(1, 500)}, Street {rng.integers(1, 60)}"
        row[8] = int(rng.integers(20, 300)) * 1000
        row[10] = int(rng.integers(1, 8))
        row[14] = _name(rng)
        row[16] = _phone(rng)
        out.append(row)
    return out


def generate_client_rows(rows: int, guarantor_cnics: int, match_ratio: float, rng: np.random.Generator) -> list[list[Any]]:
    out: list[list[Any]] = []
    for i in range(rows):
        row: list[Any] = [""] * CLIENT_WIDTH
        row[0] = i + 1
        row[1] = f"CL{i + 1:06d}"
        row[2] = _name(rng)
        row[3] = _name(rng)
        row[5] = str(rng.choice(PRODUCTS))
        row[6] = _name(rng)
        row[9] = _phone(rng)
        if rng.random() < match_ratio:
            row[13] = _cnic(int(rng.integers(0, guarantor_cnics))).replace("-", "")
        else:
            row[13] = _cnic(10_000_000 + i)
        row[15] = f"Area {rng.integers(1, 20)}"
        row[16] = int(rng.integers(44000, 46500))  # maturity as a date serial
        row[18] = str(rng.choice(BRANCHES))
        row[20] = int(rng.integers(1, 50)) * 500
        out.append(row)
    return out


def write_report(output_path: Path, title: str, header: list[str], rows: list[list[Any]]) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    sheet_data = [[title], header, *rows]
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        pd.DataFrame(sheet_data).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
    print(f"Created Excel file: {output_path} ({len(rows):,} data rows)")


def _header(width: int, names: dict[int, str]) -> list[str]:
    return [names.get(i, "") for i in range(width)]


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic guarantor / active client report workbooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/
  %(prog)s data/ --guarantor-rows 100000 --client-rows 50000 --match-ratio 0.6
        """,
    )
    parser.add_argument("output_dir", type=Path, help="Directory for the two workbooks")
    parser.add_argument("--guarantor-rows", type=int, default=20_000, help="Guarantor data rows (default: 20,000)")
    parser.add_argument("--client-rows", type=int, default=10_000, help="Active client data rows (default: 10,000)")
    parser.add_argument("--match-ratio", type=float, default=0.7, help="Share of clients with a guarantor CNIC (default: 0.7)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducible data (default: 42)")
    args = parser.parse_args()

    if args.guarantor_rows <= 0 or args.client_rows <= 0:
        print("Error: row counts must be positive", file=sys.stderr)
        return 1
    if not 0.0 <= args.match_ratio <= 1.0:
        print("Error: --match-ratio must be between 0 and 1", file=sys.stderr)
        return 1

    rng = np.random.default_rng(args.seed)
    guarantors = generate_guarantor_rows(args.guarantor_rows, rng)
    clients = generate_client_rows(args.client_rows, max(1, args.guarantor_rows // 2), args.match_ratio, rng)

    try:
        write_report(
            args.output_dir / "report24_guarantor_info.xlsx",
            "Report 24 - Guarantor Info",
            _header(GUARANTOR_WIDTH, {0: "Sr", 3: "CNIC", 6: "Address", 8: "Loan Amount", 10: "Loan Cycle",
                                      14: "Guarantor Name", 16: "Guarantor Cell"}),
            guarantors,
        )
        write_report(
            args.output_dir / "report12_active_clients.xlsx",
            "Report 12 - Active Clients",
            _header(CLIENT_WIDTH, {0: "Sr", 1: "Client ID", 2: "Name", 3: "Spouse", 5: "Product", 6: "CO Name",
                                   9: "Cell No", 13: "CNIC", 15: "Area", 16: "Maturity Date", 18: "Branch",
                                   20: "Last Paid"}),
            clients,
        )
    except Exception as e:
        print(f"\nError generating reports: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
