"""Tests for operator_log/: LogEntry, sinks, and OperatorLog."""
from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from codebuild_runner.operator_log import (
    EntryKind,
    FileLogSink,
    InMemoryLogSink,
    LogEntry,
    LogSink,
    OperatorLog,
    StructlogLogSink,
)


class _BrokenSink(LogSink):
    async def write(self, entry: LogEntry) -> None:
        raise OSError("disk full")

    async def close(self) -> None:
        raise OSError("already closed")


# ---------------------------------------------------------------------------
# LogEntry model
# ---------------------------------------------------------------------------


def test_entry_defaults() -> None:
    entry = LogEntry(message="Build id: project:1")
    assert entry.kind == EntryKind.INFO
    assert len(entry.entry_id) == 16
    assert entry.secondary == ""
    assert entry.build_id is None
    assert entry.timestamp.tzinfo is not None


def test_entry_text_without_secondary() -> None:
    assert LogEntry(message="Stopping build b").text == "[CodeBuild] Stopping build b"


def test_entry_text_with_secondary() -> None:
    entry = LogEntry(kind=EntryKind.FAILURE, message="Authorization error", secondary="bad key")
    assert entry.text == "[CodeBuild] Authorization error\n\t> bad key"


# ---------------------------------------------------------------------------
# InMemoryLogSink
# ---------------------------------------------------------------------------


async def test_in_memory_sink_keeps_order() -> None:
    sink = InMemoryLogSink()
    await sink.write(LogEntry(message="one"))
    await sink.write(LogEntry(kind=EntryKind.LINK, message="two"))
    assert sink.messages == ["one", "two"]
    assert [e.message for e in sink.of_kind(EntryKind.LINK)] == ["two"]


async def test_in_memory_sink_circular_buffer() -> None:
    sink = InMemoryLogSink(max_entries=3)
    for i in range(5):
        await sink.write(LogEntry(message=str(i)))
    # Oldest two are evicted.
    assert sink.messages == ["2", "3", "4"]


# ---------------------------------------------------------------------------
# FileLogSink
# ---------------------------------------------------------------------------


async def test_file_sink_writes_jsonl(tmp_path: Path) -> None:
    path = tmp_path / "operator.jsonl"
    sink = FileLogSink(path)

    await sink.write(LogEntry(message="Build id: project:1", build_id="project:1"))
    await sink.write(LogEntry(kind=EntryKind.FAILURE, message="Build failed", secondary="BUILD: exit 2"))

    lines = path.read_text(encoding="utf-8").strip().split("\n")
    assert len(lines) == 2
    parsed = json.loads(lines[1])
    assert parsed["kind"] == "failure"
    assert parsed["secondary"] == "BUILD: exit 2"


async def test_file_sink_read_round_trip(tmp_path: Path) -> None:
    sink = FileLogSink(tmp_path / "operator.jsonl")
    written = LogEntry(kind=EntryKind.STATUS, message="Build finished with status SUCCEEDED")
    await sink.write(written)

    entries = await sink.read()
    assert len(entries) == 1
    assert entries[0].entry_id == written.entry_id
    assert entries[0].kind == EntryKind.STATUS
    assert entries[0].timestamp == written.timestamp


async def test_file_sink_read_missing_file(tmp_path: Path) -> None:
    assert await FileLogSink(tmp_path / "missing.jsonl").read() == []


# ---------------------------------------------------------------------------
# StructlogLogSink
# ---------------------------------------------------------------------------


async def test_structlog_sink_levels() -> None:
    fake_logger = MagicMock()
    with patch("codebuild_runner.operator_log.sinks.get_logger", return_value=fake_logger):
        sink = StructlogLogSink()

    await sink.write(LogEntry(message="hello"))
    await sink.write(LogEntry(kind=EntryKind.FAILURE, message="Authorization error", secondary="bad"))

    fake_logger.info.assert_called_once()
    assert fake_logger.info.call_args.kwargs["message"] == "hello"
    fake_logger.warning.assert_called_once()
    assert fake_logger.warning.call_args.kwargs["secondary"] == "bad"


async def test_structlog_sink_write_no_error() -> None:
    await StructlogLogSink().write(LogEntry(message="Build id: project:1"))


# ---------------------------------------------------------------------------
# OperatorLog
# ---------------------------------------------------------------------------


async def test_operator_log_dispatches_to_all_sinks() -> None:
    sink1 = InMemoryLogSink()
    sink2 = InMemoryLogSink()
    log = OperatorLog([sink1, sink2])

    await log.info("Build id: project:1", build_id="project:1", attempt=1)

    assert sink1.messages == sink2.messages == ["Build id: project:1"]
    assert sink1.entries[0].details == {"attempt": 1}


async def test_operator_log_add_sink_chaining() -> None:
    log = OperatorLog()
    sink = InMemoryLogSink()
    assert log.add_sink(sink) is log
    await log.info("hello")
    assert sink.messages == ["hello"]


async def test_operator_log_helpers() -> None:
    sink = InMemoryLogSink()
    log = OperatorLog([sink])

    await log.build_log(["[Container] Running command make", "ok"], build_id="b")
    await log.link("CodeBuild dashboard", "https://console/b", build_id="b")
    await log.failure("Build b failed", "BUILD: exit 2", build_id="b")
    await log.status("FAILED", build_id="b")

    kinds = [e.kind for e in sink.entries]
    assert kinds == [
        EntryKind.BUILD_LOG,
        EntryKind.BUILD_LOG,
        EntryKind.LINK,
        EntryKind.FAILURE,
        EntryKind.STATUS,
    ]
    assert sink.entries[2].message == "CodeBuild dashboard: https://console/b"
    assert sink.entries[2].details == {"url": "https://console/b"}
    assert sink.entries[3].secondary == "BUILD: exit 2"
    assert sink.entries[4].message == "Build finished with status FAILED"
    assert {e.build_id for e in sink.entries} == {"b"}


async def test_operator_log_empty_build_log_writes_nothing() -> None:
    sink = InMemoryLogSink()
    await OperatorLog([sink]).build_log([])
    assert sink.entries == []


async def test_operator_log_survives_broken_sink() -> None:
    good = InMemoryLogSink()
    log = OperatorLog([_BrokenSink(), good])

    await log.info("still delivered")
    await log.close()

    assert good.messages == ["still delivered"]
