"""Operator log sinks: in-memory, file (JSONL) and structlog."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Any

from codebuild_runner.operator_log.models import EntryKind, LogEntry
from codebuild_runner.utils.logging import get_logger


class LogSink(ABC):
    """Abstract base for operator log sinks.

    Subclass this to forward operator messages to a CI host's console.
    """

    @abstractmethod
    async def write(self, entry: LogEntry) -> None:
        """Persist a single entry."""

    async def close(self) -> None:
        """Release resources held by the sink."""


class InMemoryLogSink(LogSink):
    """Bounded buffer backed by :class:`collections.deque`.

    Args:
        max_entries: Maximum number of entries to retain (default 10 000).
    """

    def __init__(self, max_entries: int = 10000) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)

    async def write(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> list[LogEntry]:
        """All stored entries, oldest first."""
        return list(self._entries)

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self._entries]

    def of_kind(self, kind: EntryKind) -> list[LogEntry]:
        return [e for e in self._entries if e.kind == kind]


class FileLogSink(LogSink):
    """Append-only JSONL file sink.

    Every entry is opened, written and closed on its own so nothing sits in
    a buffer if the process dies. File I/O runs in :func:`asyncio.to_thread`.

    Args:
        path: Filesystem path of the JSONL file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _serialize(self, entry: LogEntry) -> str:
        data: dict[str, Any] = entry.model_dump(mode="json")
        return json.dumps(data, default=str, sort_keys=True)

    def _write_sync(self, line: str) -> None:
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    async def write(self, entry: LogEntry) -> None:
        line = self._serialize(entry)
        await asyncio.to_thread(self._write_sync, line)

    async def read(self) -> list[LogEntry]:
        """Load every entry written so far."""
        if not self._path.exists():
            return []

        def _read() -> list[LogEntry]:
            entries: list[LogEntry] = []
            with self._path.open("r", encoding="utf-8") as fh:
                for raw_line in fh:
                    raw_line = raw_line.strip()
                    if raw_line:
                        entries.append(LogEntry.model_validate_json(raw_line))
            return entries

        return await asyncio.to_thread(_read)


class StructlogLogSink(LogSink):
    """Sink that emits each entry via :mod:`structlog`; failures at warning level."""

    def __init__(self, log_level: str = "info") -> None:
        self._log_level = log_level
        self._logger = get_logger("codebuild_runner.operator")

    async def write(self, entry: LogEntry) -> None:
        level = "warning" if entry.kind == EntryKind.FAILURE else self._log_level
        log_fn = getattr(self._logger, level, self._logger.info)
        log_fn(
            "operator_log",
            kind=str(entry.kind),
            message=entry.message,
            secondary=entry.secondary or None,
            build_id=entry.build_id,
        )
