from __future__ import annotations

from ..models.merge_result import MergeResult

"""SUMMARY line rendering for a finished merge."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: MergeResult) -> str:
    """Render the SUMMARY line of a merge run.

    Format:
    SUMMARY guarantor_rows={n} indexed={n} skipped={n} client_rows={n}
    matched={n} unmatched={n} elapsed_sec={s} output={file}

    Examples:
        >>> from datetime import datetime, UTC
        >>> from cnic_merge.models.merge_result import IndexStats
        >>> t = datetime(2024, 1, 1, tzinfo=UTC)
        >>> result = MergeResult(
        ...     rows=[], content=b"", file_name="out.xlsx", guarantor_rows=3, client_rows=2,
        ...     index=IndexStats(scanned_rows=3, indexed_keys=2, skipped_rows=1, replaced_entries=0),
        ...     start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY guarantor_rows=3 indexed=2 skipped=1 client_rows=2 matched=0 unmatched=2 elapsed_sec=2 output=out.xlsx'
    """
    return (
        f"SUMMARY guarantor_rows={result.guarantor_rows} "
        f"indexed={result.index.indexed_keys} "
        f"skipped={result.index.skipped_rows} "
        f"client_rows={result.client_rows} "
        f"matched={result.matched_rows} "
        f"unmatched={result.unmatched_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)} "
        f"output={result.file_name}"
    )
