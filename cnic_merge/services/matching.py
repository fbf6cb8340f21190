from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from ..errors import MergeCancelled
from ..models.config_models import ActiveClientColumns, GuarantorColumns
from ..models.merge_result import IndexStats
from ..models.row_data import (
    ActiveClientRow,
    GuarantorRow,
    LookupEntry,
    OutputRow,
    is_blank,
)
from .normalize import format_spreadsheet_date, normalize_id, parse_cycle

"""Index-build and join passes.

Both passes walk their table from a fixed start row (the header block before
it is skipped unconditionally) and every ``yield_every`` rows report
progress, check for cancellation and yield to the event loop so a
single-threaded host stays responsive.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "build_index",
    "join_tables",
    "build_output_row",
    "CancelCheck",
    "RowProgress",
]

# (rows processed in this pass, data rows in this pass)
RowProgress = Callable[[int, int], None]
CancelCheck = Callable[[], bool]

Lookup = dict[str, LookupEntry]


async def _checkpoint(should_cancel: CancelCheck | None) -> None:
    if should_cancel is not None and should_cancel():
        raise MergeCancelled()
    await asyncio.sleep(0)
    if should_cancel is not None and should_cancel():
        raise MergeCancelled()


def _data_rows(table: Sequence[Any], start_row: int) -> int:
    return max(0, len(table) - start_row)


async def build_index(
    table: Sequence[Sequence[Any]],
    columns: GuarantorColumns | None = None,
    *,
    start_row: int = 2,
    min_id_length: int = 13,
    yield_every: int = 500,
    on_progress: RowProgress | None = None,
    should_cancel: CancelCheck | None = None,
) -> tuple[Lookup, IndexStats]:
    """Build the CNIC lookup from the guarantor sheet.

    Rows whose normalized CNIC is shorter than ``min_id_length`` or whose
    guarantor name is blank are skipped. Among rows sharing a CNIC the one
    with the greatest loan cycle wins; on equal cycles the first-seen row is
    kept.

    Args:
        table: Raw rows of the guarantor sheet
        columns: Column map of the guarantor sheet
        start_row: First data row (zero-based); earlier rows are ignored
        min_id_length: Minimum digit count for an indexable CNIC
        yield_every: Rows between progress callbacks and event loop yields
        on_progress: Called with (processed, total) at the yield cadence
        should_cancel: Polled at every yield point

    Returns:
        (lookup keyed by normalized CNIC, pass counters)

    Raises:
        MergeCancelled: If ``should_cancel`` returns True at a yield point
    """
    columns = columns or GuarantorColumns()
    total = _data_rows(table, start_row)
    lookup: Lookup = {}
    processed = 0
    skipped = 0
    replaced = 0

    for i in range(start_row, len(table)):
        row = GuarantorRow.from_raw(i, table[i], columns)
        key = normalize_id(row.cnic)
        if len(key) < min_id_length or is_blank(row.name):
            skipped += 1
        else:
            cycle = parse_cycle(row.loan_cycle)
            current = lookup.get(key)
            if current is None:
                lookup[key] = LookupEntry(row_index=i, cycle=cycle, row=row)
            elif cycle > current.cycle:
                lookup[key] = LookupEntry(row_index=i, cycle=cycle, row=row)
                replaced += 1

        processed += 1
        if yield_every > 0 and processed % yield_every == 0:
            if on_progress is not None:
                on_progress(processed, total)
            await _checkpoint(should_cancel)

    stats = IndexStats(
        scanned_rows=processed,
        indexed_keys=len(lookup),
        skipped_rows=skipped,
        replaced_entries=replaced,
    )
    logger.debug(
        "index built rows=%d keys=%d skipped=%d replaced=%d",
        stats.scanned_rows,
        stats.indexed_keys,
        stats.skipped_rows,
        stats.replaced_entries,
    )
    return lookup, stats


def build_output_row(client: ActiveClientRow, guarantor: GuarantorRow) -> OutputRow:
    return OutputRow(
        client_id=client.client_id,
        name=client.name,
        spouse=client.spouse,
        product=client.product,
        co_name=client.co_name,
        cell_no=client.cell_no,
        area=client.area,
        maturity_date=format_spreadsheet_date(client.maturity_date),
        branch=client.branch,
        last_amount_paid=client.last_paid,
        address=guarantor.address,
        loan_amount=guarantor.loan_amount,
        loan_cycle=guarantor.loan_cycle,
        guarantor_name=guarantor.name,
        guarantor_cell=guarantor.cell,
    )


async def join_tables(
    table: Sequence[Sequence[Any]],
    lookup: Lookup,
    columns: ActiveClientColumns | None = None,
    *,
    start_row: int = 2,
    yield_every: int = 500,
    on_progress: RowProgress | None = None,
    should_cancel: CancelCheck | None = None,
) -> list[OutputRow]:
    """Match active clients against the lookup.

    Clients without a lookup entry contribute nothing; the output is always
    a subset of the active client rows, in their sheet order.
    """
    columns = columns or ActiveClientColumns()
    total = _data_rows(table, start_row)
    output: list[OutputRow] = []
    processed = 0

    for i in range(start_row, len(table)):
        client = ActiveClientRow.from_raw(i, table[i], columns)
        match = lookup.get(normalize_id(client.cnic))
        if match is not None:
            output.append(build_output_row(client, match.row))

        processed += 1
        if yield_every > 0 and processed % yield_every == 0:
            if on_progress is not None:
                on_progress(processed, total)
            await _checkpoint(should_cancel)

    logger.debug("join finished rows=%d matched=%d", processed, len(output))
    return output
