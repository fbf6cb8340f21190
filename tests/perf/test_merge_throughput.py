from __future__ import annotations

import asyncio
import time

import pytest

from cnic_merge.models.config_models import MergeConfig
from cnic_merge.services.engine import MergeEngine
from tests.builders import client_row, client_table, guarantor_row, guarantor_table

"""Throughput smoke check on generated report tables (no workbook I/O)."""

ROWS = 20_000


@pytest.mark.perf
def test_merge_throughput_budget():
    guarantors = guarantor_table(
        *[guarantor_row(f"{3520200000000 + i % (ROWS // 2)}", cycle=i % 7) for i in range(ROWS)]
    )
    clients = client_table(*[client_row(f"{3520200000000 + i}", client_id=f"CL{i:05d}") for i in range(ROWS)])
    tables = {b"g": guarantors, b"c": clients}
    updates: list[int] = []
    engine = MergeEngine(
        MergeConfig(yield_every=1000),
        on_progress=lambda p, t: updates.append(p),
        parser=lambda data, label: tables[data],
        serializer=lambda rows, sheet: b"",
    )

    start = time.perf_counter()
    result = asyncio.run(engine.run(b"g", b"c"))
    elapsed = time.perf_counter() - start

    assert result.matched_rows == ROWS // 2
    assert result.index.indexed_keys == ROWS // 2
    assert updates == sorted(updates)
    # two passes over 20k rows each stay well under the budget
    assert elapsed < 10.0
