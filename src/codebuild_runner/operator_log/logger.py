"""Fan-out operator log that writes each entry to every sink as it happens."""

from __future__ import annotations

from typing import Any

from codebuild_runner.operator_log.models import EntryKind, LogEntry
from codebuild_runner.operator_log.sinks import LogSink
from codebuild_runner.utils.logging import get_logger

logger = get_logger(__name__)


class OperatorLog:
    """Append-only, unbuffered channel for operator-visible messages.

    Sends each :class:`LogEntry` to every registered :class:`LogSink`
    before returning. Sink failures are logged but never propagated to the
    caller.

    Example::

        log = OperatorLog()
        log.add_sink(InMemoryLogSink())
        log.add_sink(FileLogSink("/var/log/codebuild-runner.jsonl"))
        await log.info("Build id: project:1234")
    """

    def __init__(self, sinks: list[LogSink] | None = None) -> None:
        self._sinks: list[LogSink] = list(sinks) if sinks else []

    def add_sink(self, sink: LogSink) -> OperatorLog:
        """Register a new sink.  Returns ``self`` for chaining."""
        self._sinks.append(sink)
        return self

    async def write(self, entry: LogEntry) -> None:
        for sink in self._sinks:
            try:
                await sink.write(entry)
            except Exception:
                logger.warning(
                    "operator_sink_error",
                    sink=type(sink).__name__,
                    entry_id=entry.entry_id,
                    exc_info=True,
                )

    async def info(self, message: str, *, build_id: str | None = None, **details: Any) -> None:
        await self.write(LogEntry(message=message, build_id=build_id, details=details))

    async def build_log(self, lines: list[str], *, build_id: str | None = None) -> None:
        for line in lines:
            await self.write(LogEntry(kind=EntryKind.BUILD_LOG, message=line, build_id=build_id))

    async def link(self, label: str, url: str, *, build_id: str | None = None) -> None:
        await self.write(
            LogEntry(
                kind=EntryKind.LINK,
                message=f"{label}: {url}",
                build_id=build_id,
                details={"url": url},
            )
        )

    async def failure(
        self, message: str, secondary: str = "", *, build_id: str | None = None
    ) -> None:
        await self.write(
            LogEntry(kind=EntryKind.FAILURE, message=message, secondary=secondary, build_id=build_id)
        )

    async def status(self, status: str, *, build_id: str | None = None) -> None:
        await self.write(
            LogEntry(
                kind=EntryKind.STATUS,
                message=f"Build finished with status {status}",
                build_id=build_id,
                details={"status": status},
            )
        )

    async def close(self) -> None:
        """Close all registered sinks."""
        for sink in self._sinks:
            try:
                await sink.close()
            except Exception:
                logger.warning(
                    "operator_sink_close_error",
                    sink=type(sink).__name__,
                    exc_info=True,
                )
