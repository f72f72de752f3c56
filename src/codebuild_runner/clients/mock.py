from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Union

from codebuild_runner.clients.base import (
    BuildServiceClient,
    ClientBundle,
    ClientFactory,
    LogServiceClient,
    ObjectStoreClient,
    SourceUploader,
)
from codebuild_runner.core.constants import BuildPhaseType, BuildStatus
from codebuild_runner.core.exceptions import ProjectNotFoundError
from codebuild_runner.core.request import StartRequest
from codebuild_runner.core.types import (
    BuildSnapshot,
    CredentialsRef,
    LogsLocation,
    ProjectInfo,
    UploadResult,
)

FetchStep = Union[BuildSnapshot, list[BuildSnapshot], Exception]


def make_snapshot(
    status: BuildStatus | str = BuildStatus.IN_PROGRESS,
    *,
    build_id: str = "project:build-1",
    current_phase: str | None = None,
    **fields: Any,
) -> BuildSnapshot:
    """Build a snapshot for scripting :class:`MockBuildService`.

    ``current_phase`` defaults to ``BUILD`` while in progress and
    ``COMPLETED`` otherwise.
    """
    if current_phase is None:
        in_progress = status == BuildStatus.IN_PROGRESS
        current_phase = BuildPhaseType.BUILD if in_progress else BuildPhaseType.COMPLETED
    return BuildSnapshot(
        id=build_id,
        arn=fields.pop("arn", f"arn:aws:codebuild:us-east-1:123456789012:build/{build_id}"),
        status=BuildStatus(status),
        current_phase=current_phase,
        **fields,
    )


class MockBuildService(BuildServiceClient):
    """In-memory build service for testing.

    Usage::

        service = MockBuildService([
            make_snapshot(BuildStatus.IN_PROGRESS),
            TransientNetworkError("read timed out"),
            make_snapshot(BuildStatus.SUCCEEDED),
        ])

    Each :meth:`fetch_status` call consumes the next scripted step: a
    snapshot is returned as a one-element list, a list is returned as is,
    and an exception is raised. Once the script is exhausted the last step
    repeats. ``on_fetch`` is called with the fetch count before each step is
    consumed.
    """

    def __init__(
        self,
        script: Sequence[FetchStep] = (),
        *,
        build_id: str = "project:build-1",
        project: ProjectInfo | None = None,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
        on_fetch: Callable[[int], None] | None = None,
    ) -> None:
        self._script = list(script)
        self._build_id = build_id
        self._project = project
        self._start_error = start_error
        self._stop_error = stop_error
        self._on_fetch = on_fetch
        self.fetch_count = 0
        self.calls: list[tuple[str, Any]] = []

    def set_script(self, script: Sequence[FetchStep]) -> None:
        self._script = list(script)

    async def start_build(self, request: StartRequest) -> str:
        self.calls.append(("start_build", request))
        if self._start_error is not None:
            raise self._start_error
        return self._build_id

    async def fetch_status(self, build_id: str) -> list[BuildSnapshot]:
        self.calls.append(("fetch_status", build_id))
        if self._on_fetch is not None:
            self._on_fetch(self.fetch_count)
        if not self._script:
            raise RuntimeError("MockBuildService: no fetch steps scripted")

        index = min(self.fetch_count, len(self._script) - 1)
        self.fetch_count += 1
        step = self._script[index]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, BuildSnapshot):
            return [step]
        return list(step)

    async def stop_build(self, build_id: str) -> None:
        self.calls.append(("stop_build", build_id))
        if self._stop_error is not None:
            raise self._stop_error

    async def describe_project(self, project_name: str) -> ProjectInfo:
        self.calls.append(("describe_project", project_name))
        if self._project is None:
            return ProjectInfo(name=project_name)
        if self._project.name != project_name:
            raise ProjectNotFoundError(f"Project {project_name} does not exist.")
        return self._project

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def call_count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    @property
    def start_requests(self) -> list[StartRequest]:
        return [arg for m, arg in self.calls if m == "start_build"]


class MockObjectStore(ObjectStoreClient):
    def __init__(self, *, versioned: bool = True, version_id: str | None = "v1") -> None:
        self.versioned = versioned
        self.version_id = version_id
        self.puts: list[dict[str, Any]] = []

    async def is_bucket_versioned(self, bucket: str) -> bool:
        return self.versioned

    async def put_object(
        self,
        bucket: str,
        key: str,
        path: Path,
        *,
        content_md5: str,
        sse_algorithm: str = "",
    ) -> str | None:
        self.puts.append({
            "bucket": bucket,
            "key": key,
            "body": path.read_bytes(),
            "content_md5": content_md5,
            "sse_algorithm": sse_algorithm,
        })
        return self.version_id


class MockLogService(LogServiceClient):
    """Serves *pages* of log lines, one page per call, then nothing.

    With *error* set every call records the request and raises it.
    """

    def __init__(self, pages: Sequence[list[str]] = (), *, error: Exception | None = None) -> None:
        self._pages = list(pages)
        self._error = error
        self.requests: list[tuple[str, str, str | None]] = []

    async def get_log_events(
        self,
        group_name: str,
        stream_name: str,
        *,
        next_token: str | None = None,
    ) -> tuple[list[str], str | None]:
        self.requests.append((group_name, stream_name, next_token))
        if self._error is not None:
            raise self._error
        index = int(next_token) if next_token else 0
        if index >= len(self._pages):
            return [], next_token
        return list(self._pages[index]), str(index + 1)


class MockSourceUploader(SourceUploader):
    def __init__(
        self,
        result: UploadResult | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._result = result
        self._error = error
        self.uploads: list[dict[str, Any]] = []

    async def upload(
        self,
        workspace: Path,
        *,
        bucket: str,
        key: str,
        local_source_path: str = "",
        workspace_subdir: str = "",
        sse_algorithm: str = "",
    ) -> UploadResult:
        self.uploads.append({
            "workspace": workspace,
            "bucket": bucket,
            "key": key,
            "local_source_path": local_source_path,
            "workspace_subdir": workspace_subdir,
            "sse_algorithm": sse_algorithm,
        })
        if self._error is not None:
            raise self._error
        if self._result is not None:
            return self._result
        return UploadResult(object_location=f"{bucket}/{key}", object_version="v1")


class MockClientFactory(ClientFactory):
    """Hands out the given mock clients, or raises *error* from :meth:`build`."""

    def __init__(
        self,
        build_service: BuildServiceClient | None = None,
        *,
        object_store: ObjectStoreClient | None = None,
        log_service: LogServiceClient | None = None,
        error: Exception | None = None,
    ) -> None:
        self.build_service = build_service or MockBuildService()
        self.object_store = object_store or MockObjectStore()
        self.log_service = log_service or MockLogService()
        self._error = error
        self.builds: list[tuple[CredentialsRef, str]] = []

    def build(self, *, credentials: CredentialsRef, region: str) -> ClientBundle:
        self.builds.append((credentials, region))
        if self._error is not None:
            raise self._error
        return ClientBundle(
            build_service=self.build_service,
            object_store=self.object_store,
            log_service=self.log_service,
            credentials_descriptor="Using mock credentials",
        )


def logs_location(
    *,
    group_name: str = "/aws/codebuild/project",
    stream_name: str = "build-1",
    deep_link: str = "https://console.aws.amazon.com/cloudwatch/home#logEvent:group=project",
    s3_deep_link: str | None = None,
) -> LogsLocation:
    return LogsLocation(
        group_name=group_name,
        stream_name=stream_name,
        deep_link=deep_link,
        s3_deep_link=s3_deep_link,
    )
