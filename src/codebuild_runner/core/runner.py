"""Build lifecycle orchestrator: validate, submit, poll, stop, report."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

from codebuild_runner.clients.base import ClientBundle, ClientFactory, SourceUploader
from codebuild_runner.clients.uploader import S3SourceUploader, split_s3_location
from codebuild_runner.core.config import BuildConfig, RunnerConfig
from codebuild_runner.core.constants import BuildStatus, EnvironmentVariableType
from codebuild_runner.core.exceptions import (
    AuthenticationError,
    BuildStopRequested,
    CodeBuildRunnerError,
    ParseError,
    RemoteJobError,
    RemoteServiceError,
    TransientNetworkError,
)
from codebuild_runner.core.request import StartRequest
from codebuild_runner.core.types import BuildSnapshot, ProjectInfo
from codebuild_runner.logs.monitor import CloudWatchLogMonitor
from codebuild_runner.operator_log import FileLogSink, OperatorLog, StructlogLogSink
from codebuild_runner.overrides.envvars import (
    ENV_VARIABLE_NAMESPACE_ERROR,
    parse_environment_variables,
)
from codebuild_runner.overrides.resolver import (
    build_start_request,
    describe_start_request,
    parse_boolean,
)
from codebuild_runner.report.accumulator import BuildReport, generate_dashboard_url
from codebuild_runner.report.result import BuildResult, Outcome, ResultReporter
from codebuild_runner.utils.async_helpers import run_sync
from codebuild_runner.utils.logging import get_logger
from codebuild_runner.validation.validator import (
    check_source_type_s3,
    env_variables_have_restricted_prefix,
    validate_config,
)

logger = get_logger(__name__)

AUTHORIZATION_ERROR = "Authorization error"
CONFIGURED_IMPROPERLY_ERROR = "CodeBuild configured improperly in project settings"
INVALID_PROJECT_ERROR = "Please select a project with S3 source type"
NOT_VERSIONED_S3_BUCKET_ERROR = "A versioned S3 bucket is required."


class RunnerState(StrEnum):
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    POLLING = "polling"
    STOPPING = "stopping"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"


class _InvocationFailed(Exception):
    def __init__(self, message: str, secondary: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.secondary = secondary


async def _wait(seconds: float, stop_event: asyncio.Event | None) -> bool:
    """Sleep for *seconds*; return True if *stop_event* was set meanwhile."""
    if stop_event is None:
        await asyncio.sleep(seconds)
        return False
    if stop_event.is_set():
        return True
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except TimeoutError:
        return False
    return True


def _uncancel() -> None:
    task = asyncio.current_task()
    if task is not None:
        task.uncancel()


class BuildRunner:
    """Runs one remote build from configuration to outcome.

    One runner drives one invocation; it owns its :class:`BuildReport` and
    must not be shared between concurrent builds.

    Cancelling the task that awaits :meth:`run`, or setting *stop_event*,
    stops the remote build: the runner asks the service to stop it, waits
    for it to finish, and returns an aborted result.

    Args:
        config: Every user-supplied field for this invocation.
        client_factory: Builds the service clients from the config's credentials.
        runner_config: Polling bounds and operator log settings.
        uploader: Source uploader for workspace source; defaults to
            :class:`S3SourceUploader` over the factory's object store.
        operator_log: Destination of operator-visible messages; defaults to
            the structlog sink, plus a JSONL file when ``operator_log_path`` is set.
        environment: Host parameters used to expand ``$NAME`` references.
        workspace: Directory zipped for workspace source; defaults to the
            current directory.
        stop_event: Optional event that requests a stop when set.

    Example::

        runner = BuildRunner(config, AwsClientFactory())
        result = await runner.run()
        print(result.outcome.kind, result.report.dashboard_url)
    """

    def __init__(
        self,
        config: BuildConfig,
        client_factory: ClientFactory,
        *,
        runner_config: RunnerConfig | None = None,
        uploader: SourceUploader | None = None,
        operator_log: OperatorLog | None = None,
        environment: Mapping[str, str] | None = None,
        workspace: str | Path | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        self._raw_config = config
        self._config = config
        self._factory = client_factory
        self._runner_config = runner_config or RunnerConfig()
        self._policy = self._runner_config.polling
        self._uploader = uploader
        self._log = operator_log or self._default_operator_log()
        self._environment = dict(environment or {})
        self._workspace = Path(workspace) if workspace is not None else Path.cwd()
        self._stop_event = stop_event

        self.state = RunnerState.VALIDATING
        self.report = BuildReport()
        self.poll_count = 0

        self._bundle: ClientBundle | None = None
        self._project: ProjectInfo | None = None
        self._monitor: CloudWatchLogMonitor | None = None
        self._build_id: str | None = None
        self._snapshot: BuildSnapshot | None = None

    def _default_operator_log(self) -> OperatorLog:
        log = OperatorLog([StructlogLogSink()])
        if self._runner_config.operator_log_path is not None:
            log.add_sink(FileLogSink(self._runner_config.operator_log_path))
        return log

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def run(self) -> BuildResult:
        """Run the invocation to completion.

        Returns:
            The outcome with the accumulated report.

        Raises:
            BuildFailedError: On a failure outcome when the exception
                failure mode is enabled.
        """
        result = await self._run()
        ResultReporter(self._config.exception_failure_mode_enabled).report(result)
        return result

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def _transition(self, state: RunnerState) -> None:
        logger.info("runner_state", state=str(state), previous=str(self.state), build_id=self._build_id)
        self.state = state

    async def _run(self) -> BuildResult:
        self._transition(RunnerState.VALIDATING)
        try:
            request, bundle, project = await self._prepare()
            self._transition(RunnerState.SUBMITTING)
            build_id = await self._submit(request, bundle, project)
        except _InvocationFailed as exc:
            return await self._fail(exc.message, exc.secondary)

        self._build_id = build_id
        self._transition(RunnerState.POLLING)
        try:
            await self._announce()
            return await self._poll()
        except asyncio.CancelledError:
            _uncancel()
            logger.info("runner_cancelled", build_id=self._build_id)
        except BuildStopRequested:
            logger.info("runner_stop_requested", build_id=self._build_id)
        return await self._stop()

    async def _prepare(self) -> tuple[StartRequest, ClientBundle, ProjectInfo]:
        config = self._config = self._raw_config.expand(self._environment)

        error = validate_config(config)
        if error:
            raise _InvocationFailed(CONFIGURED_IMPROPERLY_ERROR, error)

        try:
            env_vars = parse_environment_variables(config.env_variables)
            env_vars += parse_environment_variables(
                config.env_parameters, EnvironmentVariableType.PARAMETER_REFERENCE
            )
        except ParseError as exc:
            raise _InvocationFailed(CONFIGURED_IMPROPERLY_ERROR, exc.message) from exc
        if env_variables_have_restricted_prefix(env_vars):
            raise _InvocationFailed(CONFIGURED_IMPROPERLY_ERROR, ENV_VARIABLE_NAMESPACE_ERROR)

        try:
            bundle = self._bundle = self._factory.build(
                credentials=config.credentials_ref(), region=config.region
            )
        except AuthenticationError as exc:
            raise _InvocationFailed(AUTHORIZATION_ERROR, exc.message) from exc
        if bundle.credentials_descriptor:
            await self._log.info(bundle.credentials_descriptor)

        try:
            project = self._project = await bundle.build_service.describe_project(config.project_name)
        except RemoteServiceError as exc:
            raise _InvocationFailed(exc.message) from exc

        try:
            request = build_start_request(config, env_vars)
        except ParseError as exc:
            raise _InvocationFailed(exc.message, exc.details.get("error", "")) from exc
        return request, bundle, project

    async def _submit(self, request: StartRequest, bundle: ClientBundle, project: ProjectInfo) -> str:
        config = self._config

        if config.uses_workspace_source:
            version = await self._upload_workspace(bundle, project)
            request = request.model_copy(update={"source_version": version})
            await self._log.info(describe_start_request(config, version))
        else:
            await self._log.info(describe_start_request(config, config.source_version))

        try:
            return await bundle.build_service.start_build(request)
        except CodeBuildRunnerError as exc:
            raise _InvocationFailed(exc.message) from exc

    async def _announce(self) -> None:
        config = self._config
        build_id = self._started()[1]
        await self._log.info(f"Build id: {build_id}", build_id=build_id)
        await self._log.link(
            "CodeBuild dashboard",
            generate_dashboard_url(config.region, config.project_name, build_id),
            build_id=build_id,
        )

    async def _upload_workspace(self, bundle: ClientBundle, project: ProjectInfo) -> str:
        config = self._config

        if not check_source_type_s3(project.source_type):
            raise _InvocationFailed(INVALID_PROJECT_ERROR)

        bucket, key = split_s3_location(project.source_location or "")
        try:
            versioned = await bundle.object_store.is_bucket_versioned(bucket)
        except CodeBuildRunnerError as exc:
            raise _InvocationFailed(exc.message) from exc
        if not versioned:
            raise _InvocationFailed(NOT_VERSIONED_S3_BUCKET_ERROR)

        uploader = self._uploader or S3SourceUploader(bundle.object_store)
        try:
            upload = await uploader.upload(
                self._workspace,
                bucket=bucket,
                key=key,
                local_source_path=config.local_source_path,
                workspace_subdir=config.workspace_subdir,
                sse_algorithm=config.sse_algorithm,
            )
        except CodeBuildRunnerError as exc:
            raise _InvocationFailed(exc.message) from exc

        if upload.object_version is None:
            raise _InvocationFailed(NOT_VERSIONED_S3_BUCKET_ERROR)
        await self._log.info(
            f"S3 object version id for uploaded source is {upload.object_version}",
            location=upload.object_location,
        )
        return upload.object_version

    # ------------------------------------------------------------------ #
    # Polling
    # ------------------------------------------------------------------ #

    def _started(self) -> tuple[ClientBundle, str]:
        if self._bundle is None or self._build_id is None:
            raise RuntimeError("BuildRunner has not started a build")
        return self._bundle, self._build_id

    async def _fetch(self) -> BuildSnapshot:
        bundle, build_id = self._started()
        snapshots = await bundle.build_service.fetch_status(build_id)
        if len(snapshots) > 1:
            raise RemoteServiceError(
                "Multiple builds mapped to this build id.",
                details={"build_id": build_id, "count": len(snapshots)},
            )
        if not snapshots:
            raise RemoteServiceError(
                f"No build found for build id {build_id}",
                details={"build_id": build_id},
            )
        self._snapshot = snapshots[0]
        return self._snapshot

    async def _observe(self, snapshot: BuildSnapshot) -> None:
        """Initialize the report on first sight, then drain logs and apply *snapshot*.

        A failed log read is logged and skipped; only status fetches decide
        the outcome.
        """
        config = self._config
        bundle = self._started()[0]

        if self._monitor is None:
            self._monitor = CloudWatchLogMonitor(
                bundle.log_service,
                streaming_disabled=parse_boolean(config.cwl_streaming_disabled),
            )
        if not self.report.initialized:
            project = self._project or ProjectInfo(name=config.project_name)
            self.report.initialize(
                snapshot,
                region=config.region,
                project_name=config.project_name,
                artifact_location=project.artifact_location,
                artifact_type=project.artifact_type,
                artifact_type_override=config.artifact_type_override,
            )

        self._monitor.logs_location = snapshot.logs
        try:
            lines = await self._monitor.poll()
        except CodeBuildRunnerError as exc:
            logger.warning("log_poll_error", build_id=snapshot.id, error=exc.message, code=exc.code)
            lines = []
        await self._log.build_log(lines, build_id=snapshot.id)

        links = self.report.update(snapshot, lines, snapshot.logs)
        if "cloud_watch_logs_url" in links:
            await self._log.link("CloudWatch dashboard", links["cloud_watch_logs_url"], build_id=snapshot.id)
        if "s3_logs_url" in links:
            await self._log.link("S3 logs location", links["s3_logs_url"], build_id=snapshot.id)

    async def _poll(self) -> BuildResult:
        while True:
            try:
                snapshot = await self._fetch()
                await self._observe(snapshot)
                if not snapshot.in_progress:
                    return await self._complete(snapshot)
            except TransientNetworkError as exc:
                logger.warning(
                    "poll_transient_error",
                    build_id=self._build_id,
                    poll_count=self.poll_count,
                    error=exc.message,
                )
            except RemoteJobError as exc:
                return await self._fail(exc.message, exc.details.get("phase_errors", ""))
            except CodeBuildRunnerError as exc:
                return await self._fail(exc.message)

            delay = self._policy.compute_delay(self.poll_count)
            self.poll_count += 1
            logger.debug("poll_sleep", build_id=self._build_id, delay=round(delay, 3))
            if await _wait(delay, self._stop_event):
                raise BuildStopRequested(f"Stop requested for build {self._build_id}")

    async def _complete(self, snapshot: BuildSnapshot) -> BuildResult:
        await self._log.status(str(snapshot.status), build_id=snapshot.id)
        if snapshot.status != BuildStatus.SUCCEEDED:
            raise RemoteJobError(
                f"Build {snapshot.id} failed",
                code=str(snapshot.status),
                details={"phase_errors": self.report.phase_error_message},
            )
        self.report.finalize(True)
        self._transition(RunnerState.SUCCEEDED)
        return self._result(Outcome.success())

    async def _stop(self) -> BuildResult:
        """Stop the remote build and wait until it reports the ``COMPLETED`` phase.

        Transient fetch errors are retried at the stop interval; ``stop_build``
        is called at most once.
        """
        self._transition(RunnerState.STOPPING)
        bundle, build_id = self._started()
        await self._log.info(f"Stopping build {build_id}", build_id=build_id)

        stop_sent = False
        try:
            while True:
                try:
                    snapshot = await self._fetch()
                    await self._observe(snapshot)
                    if snapshot.phase_completed:
                        break
                    if not stop_sent:
                        await bundle.build_service.stop_build(build_id)
                        stop_sent = True
                except TransientNetworkError as exc:
                    logger.warning("stop_transient_error", build_id=build_id, error=exc.message)
                await _wait(self._policy.stop_poll_interval, None)
        except asyncio.CancelledError:
            self._abort()
            raise
        except CodeBuildRunnerError as exc:
            logger.warning("stop_build_error", build_id=build_id, error=exc.message, exc_info=True)
            await self._log.failure(f"Failed to confirm build {build_id} stopped", exc.message, build_id=build_id)

        self._abort()
        await self._log.status(str(BuildStatus.STOPPED), build_id=build_id)
        return self._result(Outcome.aborted())

    def _abort(self) -> None:
        self.report.finalize(False)
        self._transition(RunnerState.STOPPED)

    # ------------------------------------------------------------------ #
    # Outcome helpers
    # ------------------------------------------------------------------ #

    async def _fail(self, message: str, secondary: str = "") -> BuildResult:
        if self.report.initialized:
            self.report.finalize(False)
        self._transition(RunnerState.FAILED)
        await self._log.failure(message, secondary, build_id=self._build_id)
        return self._result(Outcome.failure(message, secondary))

    def _result(self, outcome: Outcome) -> BuildResult:
        artifacts = self._snapshot.artifacts if self._snapshot is not None else None
        return BuildResult(
            outcome=outcome,
            report=self.report,
            build_id=self._build_id,
            build_arn=self.report.build_arn or None,
            artifacts_location=artifacts.location if artifacts is not None else None,
        )


def run_build(
    config: BuildConfig,
    client_factory: ClientFactory,
    *,
    environment: Mapping[str, str] | None = None,
    **kwargs: Any,
) -> BuildResult:
    """Blocking wrapper around :meth:`BuildRunner.run`.

    *environment* defaults to the process environment.
    """
    if environment is None:
        environment = dict(os.environ)
    runner = BuildRunner(config, client_factory, environment=environment, **kwargs)
    return run_sync(runner.run())
