from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Union

from ..errors import MergeCancelled, MergeError, MissingInputError, ParseError
from ..excel.reader import parse_workbook
from ..excel.writer import serialize_table
from ..models.config_models import MergeConfig
from ..models.merge_result import MergeResult
from ..models.merge_state import ACTIVE_STATES, PASSES_PERCENT, PHASE_PERCENT, MergeState
from ..models.row_data import OutputRow, RawTable
from .matching import build_index, join_tables
from .progress import ProgressCallback, ProgressReporter, scale_percent, split_band

"""Merge orchestration.

``MergeEngine.run`` drives one merge through its states:

    idle → reading → index_building → joining → writing → done

and reports ``(percent, status_text)`` at every transition and at the row
cadence inside the two passes. Any fatal error moves the engine to
``failed``; cancellation moves it straight back to ``idle``. In both cases
the partially built output is dropped.

The engine is single-run: starting a second run while one is in flight is
rejected rather than queued.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "MergeEngine",
    "InputSource",
    "GUARANTOR_LABEL",
    "CLIENT_LABEL",
]

GUARANTOR_LABEL = "Guarantor Info"
CLIENT_LABEL = "Active Client"

Loader = Callable[[], Union[bytes, Awaitable[bytes]]]
InputSource = Union[bytes, bytearray, str, os.PathLike, Loader]

Parser = Callable[[bytes, str], RawTable]
Serializer = Callable[[list[OutputRow], str], bytes]


async def load_source(source: InputSource, label: str) -> bytes:
    """Resolve an input source to bytes.

    Paths are read off the event loop thread; loaders may be plain or async
    callables. Read failures surface as ParseError for ``label``.
    """
    try:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source)
        if isinstance(source, (str, os.PathLike)):
            return await asyncio.to_thread(Path(source).read_bytes)
        data = source()
        if inspect.isawaitable(data):
            data = await data
        return bytes(data)
    except OSError as e:
        raise ParseError(label, f"failed to read {label} file: {e}") from e


class MergeEngine:
    """Consolidates the guarantor and active client reports.

    Parameters
    ----------
    config: column maps, start rows and cadence; defaults to the built-in layout
    on_progress: host callback receiving (percent, status_text)
    parser / serializer: workbook collaborators, replaceable for tests
    """

    def __init__(
        self,
        config: MergeConfig | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        parser: Parser = parse_workbook,
        serializer: Serializer = serialize_table,
    ) -> None:
        self.config = config or MergeConfig()
        self.progress = ProgressReporter(on_progress)
        self._parse = parser
        self._serialize = serializer
        self.state = MergeState.IDLE
        self.error: MergeError | None = None
        self._cancel_requested = False

    @property
    def busy(self) -> bool:
        return self.state in ACTIVE_STATES

    def cancel(self) -> None:
        """Request cancellation; honoured at the next yield point."""
        if self.busy:
            self._cancel_requested = True

    def _should_cancel(self) -> bool:
        return self._cancel_requested

    def _enter(self, state: MergeState, status_text: str, percent: int | None = None) -> None:
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state
        self.progress.report(PHASE_PERCENT[state][0] if percent is None else percent, status_text)

    def _fail(self, error: MergeError) -> None:
        self.state = MergeState.FAILED
        self.error = error
        self.progress.reset()
        self.progress.report(0, "Export failed")
        logger.error("merge failed kind=%s: %s", error.kind, error.message)

    def _abort(self) -> None:
        self.state = MergeState.IDLE
        self.progress.reset()
        logger.info("merge cancelled")

    def _pass_progress(self, start: int, end: int, text: str) -> Callable[[int, int], None]:
        def report(done: int, total: int) -> None:
            self.progress.report(scale_percent(done, total, start, end), f"{text}... ({done}/{total})")

        return report

    async def run(self, guarantor_source: InputSource | None, client_source: InputSource | None) -> MergeResult:
        """Run one merge and return its result.

        Raises:
            MissingInputError: an input is absent; the engine stays idle
            ParseError: an input cannot be read or parsed
            WriteError: the output workbook cannot be produced
            MergeCancelled: cancel() was called during the run
            MergeError: a run is already in flight (kind="busy") or an
                unexpected internal failure occurred (kind="internal")
        """
        if self.busy:
            raise MergeError("a merge is already running", kind="busy")

        missing = [
            label
            for label, src in ((GUARANTOR_LABEL, guarantor_source), (CLIENT_LABEL, client_source))
            if src is None
        ]
        self.state = MergeState.IDLE
        self.error = None
        self._cancel_requested = False
        self.progress.reset()
        if missing:
            raise MissingInputError(missing)

        start_time = datetime.now(UTC)
        cfg = self.config
        try:
            self._enter(MergeState.READING, "Loading files...", percent=2)
            raw_g, raw_c = await asyncio.gather(
                load_source(guarantor_source, GUARANTOR_LABEL),
                load_source(client_source, CLIENT_LABEL),
            )
            if self._cancel_requested:
                raise MergeCancelled()

            self.progress.report(PHASE_PERCENT[MergeState.READING][1], "Parsing workbooks...")
            # parsing is CPU bound; keep it off the event loop thread
            guarantor_table, client_table = await asyncio.gather(
                asyncio.to_thread(self._parse, raw_g, GUARANTOR_LABEL),
                asyncio.to_thread(self._parse, raw_c, CLIENT_LABEL),
            )
            if self._cancel_requested:
                raise MergeCancelled()
            logger.info(
                "parsed guarantor_rows=%d client_rows=%d",
                len(guarantor_table),
                len(client_table),
            )

            passes_start, passes_end = PASSES_PERCENT
            guarantor_rows = max(0, len(guarantor_table) - cfg.guarantor_start_row)
            client_rows = max(0, len(client_table) - cfg.client_start_row)
            boundary = split_band(passes_start, passes_end, guarantor_rows, client_rows)

            self._enter(MergeState.INDEX_BUILDING, "Scanning Guarantor Loans...", percent=passes_start)
            lookup, index_stats = await build_index(
                guarantor_table,
                cfg.guarantor_columns,
                start_row=cfg.guarantor_start_row,
                min_id_length=cfg.min_id_length,
                yield_every=cfg.yield_every,
                on_progress=self._pass_progress(passes_start, boundary, "Scanning Guarantor Loans"),
                should_cancel=self._should_cancel,
            )

            self._enter(MergeState.JOINING, "Matching Active Clients...", percent=boundary)
            rows = await join_tables(
                client_table,
                lookup,
                cfg.client_columns,
                start_row=cfg.client_start_row,
                yield_every=cfg.yield_every,
                on_progress=self._pass_progress(boundary, passes_end, "Matching Active Clients"),
                should_cancel=self._should_cancel,
            )
            if self._cancel_requested:
                raise MergeCancelled()

            self._enter(MergeState.WRITING, f"Writing workbook with {len(rows)} matched records...")
            content = self._serialize(rows, cfg.sheet_name)
        except (MergeCancelled, asyncio.CancelledError):
            self._abort()
            raise
        except MergeError as e:
            self._fail(e)
            raise
        except Exception as e:
            wrapped = MergeError(f"unexpected error: {e}", kind="internal")
            self._fail(wrapped)
            raise wrapped from e

        end_time = datetime.now(UTC)
        self.state = MergeState.DONE
        self.progress.report(100, "Export complete")

        warnings: list[str] = []
        if index_stats.indexed_keys == 0:
            warnings.append("no guarantor rows were indexed; check the CNIC and name columns")
        if client_rows and not rows:
            warnings.append("no active client matched a guarantor CNIC")
        for w in warnings:
            logger.warning(w)

        return MergeResult(
            rows=rows,
            content=content,
            file_name=cfg.output_file_name,
            guarantor_rows=index_stats.scanned_rows,
            client_rows=client_rows,
            index=index_stats,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            warnings=warnings,
        )
