from codebuild_runner.operator_log.logger import OperatorLog
from codebuild_runner.operator_log.models import EntryKind, LogEntry
from codebuild_runner.operator_log.sinks import (
    FileLogSink,
    InMemoryLogSink,
    LogSink,
    StructlogLogSink,
)

__all__ = [
    "EntryKind",
    "FileLogSink",
    "InMemoryLogSink",
    "LogEntry",
    "LogSink",
    "OperatorLog",
    "StructlogLogSink",
]
