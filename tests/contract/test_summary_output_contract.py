from __future__ import annotations

import asyncio
import re

from cnic_merge.services.engine import MergeEngine
from cnic_merge.services.summary import render_summary_line
from tests.builders import client_row, client_table, guarantor_row, guarantor_table

"""SUMMARY line format contract."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+guarantor_rows=([0-9]+)\s+indexed=([0-9]+)\s+skipped=([0-9]+)\s+"
    r"client_rows=([0-9]+)\s+matched=([0-9]+)\s+unmatched=([0-9]+)\s+"
    r"elapsed_sec=([0-9]+\.?[0-9]*)\s+output=(.+\.xlsx)$"
)


def test_summary_pattern_example_line():
    line = (
        "SUMMARY guarantor_rows=120 indexed=98 skipped=4 client_rows=75 matched=60 "
        "unmatched=15 elapsed_sec=0.84 output=Updated Guarantor Info.xlsx"
    )
    assert SUMMARY_PATTERN.match(line)


def test_summary_line_from_real_run_matches_pattern():
    tables = {
        b"g": guarantor_table(guarantor_row("1234567890123"), guarantor_row("12")),
        b"c": client_table(client_row("1234567890123"), client_row("0000000000000")),
    }
    engine = MergeEngine(parser=lambda data, label: tables[data], serializer=lambda rows, sheet: b"")
    result = asyncio.run(engine.run(b"g", b"c"))

    m = SUMMARY_PATTERN.match(render_summary_line(result))
    assert m
    guarantor_rows, indexed, skipped, client_rows, matched, unmatched = (int(m.group(i)) for i in range(1, 7))
    assert (guarantor_rows, indexed, skipped) == (2, 1, 1)
    assert matched + unmatched == client_rows == 2
