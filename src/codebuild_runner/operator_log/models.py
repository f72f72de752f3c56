"""Operator log entry model."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class EntryKind(StrEnum):
    INFO = "info"
    BUILD_LOG = "build_log"
    LINK = "link"
    FAILURE = "failure"
    STATUS = "status"


class LogEntry(BaseModel):
    """One line shown to whoever is watching the pipeline run.

    ``message`` is the human-readable text; ``secondary`` holds the detail
    printed under it (e.g. the reason behind a failure).
    """

    entry_id: str = Field(default_factory=lambda: uuid4().hex[:16])
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    kind: EntryKind = EntryKind.INFO
    message: str
    secondary: str = ""
    build_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def text(self) -> str:
        """The entry as printed: ``"[CodeBuild] message"`` plus an indented detail line."""
        text = f"[CodeBuild] {self.message}"
        if self.secondary:
            text += f"\n\t> {self.secondary}"
        return text
