from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codebuild_runner.report.result import BuildResult


class CodeBuildRunnerError(Exception):
    """Base exception for all codebuild-runner errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"ResourceNotFoundException"``).
        details: Arbitrary key/value context about the error.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}

    @property
    def message(self) -> str:
        return str(self)

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


class ConfigurationError(CodeBuildRunnerError): ...


class ParseError(ConfigurationError):
    """A malformed environment-variable, override or JSON string."""


class AuthenticationError(CodeBuildRunnerError):
    """Client construction failed (bad credentials, unknown profile, bad proxy)."""


class SourceUploadError(CodeBuildRunnerError): ...


class RemoteJobError(CodeBuildRunnerError):
    """The remote build reached a terminal status other than ``SUCCEEDED``."""


# ---------------------------------------------------------------------------
# Errors raised at the build-service boundary
# ---------------------------------------------------------------------------


class RemoteServiceError(CodeBuildRunnerError):
    """A call to the build service, object store or log service failed."""


class ProjectNotFoundError(RemoteServiceError): ...


class TransientNetworkError(RemoteServiceError):
    """The HTTP request could not be executed (connect/read timeout, dropped connection).

    Always retryable. The poll loop keeps retrying these until the build
    finishes or the invocation is cancelled.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


# ---------------------------------------------------------------------------
# Control-flow signals
# ---------------------------------------------------------------------------


class BuildStopRequested(CodeBuildRunnerError):
    """The caller asked the running invocation to stop the remote build."""


class BuildFailedError(CodeBuildRunnerError):
    """Hard failure signal raised when the exception failure mode is enabled.

    Carries the :class:`~codebuild_runner.report.result.BuildResult` so the
    caller can still inspect the report after catching it.
    """

    def __init__(self, message: str, result: BuildResult | None = None) -> None:
        super().__init__(message)
        self.result = result
