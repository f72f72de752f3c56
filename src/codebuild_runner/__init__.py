"""Run AWS CodeBuild builds from a CI pipeline and report the outcome."""

from codebuild_runner.__version__ import __version__

from codebuild_runner.clients.aws import AwsClientFactory
from codebuild_runner.clients.base import (
    BuildServiceClient,
    ClientBundle,
    ClientFactory,
    LogMonitor,
    LogServiceClient,
    ObjectStoreClient,
    SourceUploader,
)
from codebuild_runner.core.config import BuildConfig, RunnerConfig
from codebuild_runner.core.constants import (
    BuildPhaseType,
    BuildStatus,
    EnvironmentVariableType,
    SourceControlType,
)
from codebuild_runner.core.exceptions import (
    AuthenticationError,
    BuildFailedError,
    BuildStopRequested,
    CodeBuildRunnerError,
    ConfigurationError,
    ParseError,
    ProjectNotFoundError,
    RemoteJobError,
    RemoteServiceError,
    SourceUploadError,
    TransientNetworkError,
)
from codebuild_runner.core.request import StartRequest
from codebuild_runner.core.runner import BuildRunner, RunnerState, run_build
from codebuild_runner.core.types import BuildSnapshot, EnvironmentVariable
from codebuild_runner.operator_log import OperatorLog
from codebuild_runner.report import BuildReport, BuildResult, Outcome, OutcomeKind, ResultReporter
from codebuild_runner.resilience.polling import PollingPolicy
from codebuild_runner.utils.logging import configure_from_runner_config, configure_logging

__all__ = [
    "__version__",
    "AuthenticationError",
    "AwsClientFactory",
    "BuildConfig",
    "BuildFailedError",
    "BuildPhaseType",
    "BuildReport",
    "BuildResult",
    "BuildRunner",
    "BuildServiceClient",
    "BuildSnapshot",
    "BuildStatus",
    "BuildStopRequested",
    "ClientBundle",
    "ClientFactory",
    "CodeBuildRunnerError",
    "ConfigurationError",
    "EnvironmentVariable",
    "EnvironmentVariableType",
    "LogMonitor",
    "LogServiceClient",
    "ObjectStoreClient",
    "OperatorLog",
    "Outcome",
    "OutcomeKind",
    "ParseError",
    "PollingPolicy",
    "ProjectNotFoundError",
    "RemoteJobError",
    "RemoteServiceError",
    "ResultReporter",
    "RunnerConfig",
    "RunnerState",
    "SourceControlType",
    "SourceUploadError",
    "SourceUploader",
    "StartRequest",
    "TransientNetworkError",
    "configure_from_runner_config",
    "configure_logging",
    "run_build",
]
