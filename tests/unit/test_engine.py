from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from cnic_merge.errors import MergeCancelled, MergeError, MissingInputError, ParseError, WriteError
from cnic_merge.models.config_models import MergeConfig
from cnic_merge.models.merge_state import MergeState
from cnic_merge.services.engine import CLIENT_LABEL, GUARANTOR_LABEL, MergeEngine, load_source
from tests.builders import client_row, client_table, guarantor_row, guarantor_table, workbook_bytes

GUARANTORS = guarantor_table(
    guarantor_row("1234567890123", cycle=1, name="Old"),
    guarantor_row("1234567890123", cycle=4, name="Latest"),
    guarantor_row("5555555555555", name="Unused"),
)
CLIENTS = client_table(
    client_row("12345-6789012-3", client_id="CL001"),
    client_row("1111111111111", client_id="CL002"),
)


def _fake_parser(tables):
    def parse(data, label):
        return tables[data]
    return parse


def _engine(callback=None, config=None, serializer=None, parser=None):
    return MergeEngine(
        config,
        on_progress=callback,
        parser=parser or _fake_parser({b"g": GUARANTORS, b"c": CLIENTS}),
        serializer=serializer or (lambda rows, sheet: b"xlsx:%d" % len(rows)),
    )


def test_run_success_reports_monotonic_progress():
    updates: list[tuple[int, str]] = []
    engine = _engine(lambda p, t: updates.append((p, t)))

    result = asyncio.run(engine.run(b"g", b"c"))

    assert engine.state is MergeState.DONE
    assert result.content == b"xlsx:1"
    assert result.file_name == "Updated Guarantor Info.xlsx"
    assert [r.client_id for r in result.rows] == ["CL001"]
    assert result.rows[0].guarantor_name == "Latest"
    assert result.guarantor_rows == 3
    assert result.client_rows == 2
    assert result.unmatched_rows == 1
    assert result.index.indexed_keys == 2

    percents = [p for p, _ in updates]
    assert percents == sorted(percents)
    assert percents[-1] == 100
    texts = [t for _, t in updates]
    assert texts[0] == "Loading files..."
    assert "Scanning Guarantor Loans..." in texts
    assert "Matching Active Clients..." in texts
    assert "Writing workbook with 1 matched records..." in texts
    assert texts[-1] == "Export complete"


def test_run_progress_inside_passes():
    updates: list[tuple[int, str]] = []
    config = MergeConfig(yield_every=1)
    engine = _engine(lambda p, t: updates.append((p, t)), config=config)
    asyncio.run(engine.run(b"g", b"c"))

    # 3 guarantor rows and 2 client rows split 8..95 at 60
    scans = [(p, t) for p, t in updates if t.startswith("Scanning Guarantor Loans... (")]
    assert scans[-1] == (60, "Scanning Guarantor Loans... (3/3)")
    joins = [(p, t) for p, t in updates if t.startswith("Matching Active Clients... (")]
    assert joins[0] == (78, "Matching Active Clients... (1/2)")
    assert joins[-1] == (95, "Matching Active Clients... (2/2)")


def test_progress_split_by_row_counts():
    updates: list[tuple[int, str]] = []
    small = guarantor_table(*[guarantor_row(f"{1000000000000 + i}") for i in range(10)])
    large = client_table(*[client_row(f"{2000000000000 + i}") for i in range(3000)])
    engine = _engine(
        lambda p, t: updates.append((p, t)),
        config=MergeConfig(yield_every=100),
        parser=_fake_parser({b"g": small, b"c": large}),
    )
    asyncio.run(engine.run(b"g", b"c"))

    matching = [p for p, t in updates if t.startswith("Matching Active Clients")]
    # 10 of 3010 rows are done when the join starts
    assert matching[0] < 20
    assert matching[-1] == 95
    percents = [p for p, _ in updates]
    assert percents == sorted(percents)


def test_parse_runs_off_event_loop_thread():
    loop_threads: list[int] = []
    parse_threads: list[int] = []
    tables = {b"g": GUARANTORS, b"c": CLIENTS}

    def parser(data, label):
        parse_threads.append(threading.get_ident())
        return tables[data]

    async def scenario():
        loop_threads.append(threading.get_ident())
        return await _engine(parser=parser).run(b"g", b"c")

    result = asyncio.run(scenario())
    assert result.matched_rows == 1
    assert len(parse_threads) == 2
    assert loop_threads[0] not in parse_threads


def test_missing_input_keeps_engine_idle():
    updates: list[tuple[int, str]] = []
    engine = _engine(lambda p, t: updates.append((p, t)))
    with pytest.raises(MissingInputError) as exc:
        asyncio.run(engine.run(None, b"c"))
    assert exc.value.kind == "missing_input"
    assert exc.value.missing == [GUARANTOR_LABEL]
    assert engine.state is MergeState.IDLE
    assert updates == []

    with pytest.raises(MissingInputError) as exc:
        asyncio.run(engine.run(None, None))
    assert exc.value.missing == [GUARANTOR_LABEL, CLIENT_LABEL]


def test_parse_failure_moves_to_failed_and_resets_progress():
    updates: list[tuple[int, str]] = []

    def parser(data, label):
        if label == CLIENT_LABEL:
            raise ParseError(label, "not an .xlsx or .xls workbook")
        return GUARANTORS

    engine = _engine(lambda p, t: updates.append((p, t)), parser=parser)
    with pytest.raises(ParseError) as exc:
        asyncio.run(engine.run(b"g", b"c"))

    assert exc.value.source == CLIENT_LABEL
    assert engine.state is MergeState.FAILED
    assert engine.error is exc.value
    assert engine.progress.percent == 0
    assert updates[-1] == (0, "Export failed")


def test_write_failure_moves_to_failed():
    def serializer(rows, sheet):
        raise WriteError("disk full")

    engine = _engine(serializer=serializer)
    with pytest.raises(WriteError):
        asyncio.run(engine.run(b"g", b"c"))
    assert engine.state is MergeState.FAILED


def test_unexpected_error_is_wrapped_as_internal():
    def parser(data, label):
        raise KeyError("boom")

    engine = _engine(parser=parser)
    with pytest.raises(MergeError) as exc:
        asyncio.run(engine.run(b"g", b"c"))
    assert exc.value.kind == "internal"
    assert isinstance(exc.value.__cause__, KeyError)
    assert engine.state is MergeState.FAILED


def test_engine_can_rerun_after_failure():
    calls = {"n": 0}

    def serializer(rows, sheet):
        calls["n"] += 1
        if calls["n"] == 1:
            raise WriteError("first attempt")
        return b"ok"

    engine = _engine(serializer=serializer)
    with pytest.raises(WriteError):
        asyncio.run(engine.run(b"g", b"c"))
    result = asyncio.run(engine.run(b"g", b"c"))
    assert result.content == b"ok"
    assert engine.state is MergeState.DONE
    assert engine.error is None


def test_busy_engine_rejects_second_run():
    engine = _engine()
    engine.state = MergeState.JOINING
    with pytest.raises(MergeError) as exc:
        asyncio.run(engine.run(b"g", b"c"))
    assert exc.value.kind == "busy"
    assert engine.state is MergeState.JOINING


def test_concurrent_run_is_rejected():
    async def slow_loader():
        await asyncio.sleep(0.01)
        return b"g"

    engine = _engine()

    async def scenario():
        first = asyncio.create_task(engine.run(slow_loader, b"c"))
        await asyncio.sleep(0)
        with pytest.raises(MergeError) as exc:
            await engine.run(b"g", b"c")
        assert exc.value.kind == "busy"
        return await first

    result = asyncio.run(scenario())
    assert result.matched_rows == 1


def test_cancel_returns_engine_to_idle():
    big = guarantor_table(*[guarantor_row(f"{1000000000000 + i}") for i in range(50)])
    engine = _engine(
        config=MergeConfig(yield_every=5),
        parser=_fake_parser({b"g": big, b"c": CLIENTS}),
    )

    def on_progress(percent, text):
        if text.startswith("Scanning Guarantor Loans... ("):
            engine.cancel()

    engine.progress.callback = on_progress
    with pytest.raises(MergeCancelled):
        asyncio.run(engine.run(b"g", b"c"))
    assert engine.state is MergeState.IDLE
    assert engine.progress.percent == 0


def test_cancel_when_idle_is_noop():
    engine = _engine()
    engine.cancel()
    result = asyncio.run(engine.run(b"g", b"c"))
    assert result.matched_rows == 1


def test_no_matches_yields_warning_and_empty_rows():
    engine = _engine(parser=_fake_parser({b"g": guarantor_table(), b"c": CLIENTS}))
    result = asyncio.run(engine.run(b"g", b"c"))
    assert result.rows == []
    assert len(result.warnings) == 2
    assert result.matched_rows == 0
    assert result.unmatched_rows == 2


def test_run_with_real_workbooks():
    engine = MergeEngine()
    result = asyncio.run(engine.run(workbook_bytes(GUARANTORS), workbook_bytes(CLIENTS)))
    assert [r.client_id for r in result.rows] == ["CL001"]
    assert result.content.startswith(b"PK")


def test_load_source_variants(tmp_path: Path):
    p = tmp_path / "in.xlsx"
    p.write_bytes(b"file-bytes")

    async def async_loader():
        return b"async"

    assert asyncio.run(load_source(b"raw", "x")) == b"raw"
    assert asyncio.run(load_source(bytearray(b"ba"), "x")) == b"ba"
    assert asyncio.run(load_source(p, "x")) == b"file-bytes"
    assert asyncio.run(load_source(str(p), "x")) == b"file-bytes"
    assert asyncio.run(load_source(lambda: b"sync", "x")) == b"sync"
    assert asyncio.run(load_source(async_loader, "x")) == b"async"


def test_load_source_read_error_is_parse_error(tmp_path: Path):
    with pytest.raises(ParseError) as exc:
        asyncio.run(load_source(tmp_path / "missing.xlsx", GUARANTOR_LABEL))
    assert exc.value.source == GUARANTOR_LABEL
    assert "failed to read" in exc.value.message
