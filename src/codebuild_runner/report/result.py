"""Final outcome of an invocation and how it is signalled to the caller."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from codebuild_runner.core.exceptions import BuildFailedError
from codebuild_runner.report.accumulator import BuildReport
from codebuild_runner.utils.logging import get_logger

logger = get_logger(__name__)


class OutcomeKind(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"


class Outcome(BaseModel):
    """Tagged result; exactly one is produced per invocation."""

    kind: OutcomeKind
    message: str = ""
    secondary_message: str = ""

    model_config = {"frozen": True}

    @classmethod
    def success(cls) -> Outcome:
        return cls(kind=OutcomeKind.SUCCESS)

    @classmethod
    def failure(cls, message: str, secondary_message: str = "") -> Outcome:
        return cls(kind=OutcomeKind.FAILURE, message=message, secondary_message=secondary_message)

    @classmethod
    def aborted(cls) -> Outcome:
        return cls(kind=OutcomeKind.ABORTED)

    @property
    def error_message(self) -> str:
        """Primary and secondary message joined the way the operator log shows them."""
        if not self.secondary_message:
            return self.message
        return f"{self.message}\n\t> {self.secondary_message}"


class BuildResult(BaseModel):
    """What the caller gets back from one invocation."""

    outcome: Outcome
    report: BuildReport = Field(default_factory=BuildReport)
    build_id: str | None = None
    build_arn: str | None = None
    artifacts_location: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome.kind == OutcomeKind.SUCCESS

    @property
    def error_message(self) -> str:
        return self.outcome.error_message


class ResultReporter:
    """Decides whether a failure is returned as a status or raised.

    Args:
        exception_failure_mode: When true, a failure outcome raises
            :class:`BuildFailedError` instead of being returned. Success and
            aborted outcomes are always returned.
    """

    def __init__(self, exception_failure_mode: bool = False) -> None:
        self._exception_failure_mode = exception_failure_mode

    def report(self, result: BuildResult) -> OutcomeKind:
        outcome = result.outcome
        logger.info("build_outcome", kind=str(outcome.kind), build_id=result.build_id)
        if outcome.kind == OutcomeKind.FAILURE and self._exception_failure_mode:
            raise BuildFailedError(outcome.error_message, result=result)
        return outcome.kind
