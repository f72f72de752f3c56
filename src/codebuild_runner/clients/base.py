"""Interfaces of the remote services the runner talks to.

The runner only depends on these abstract classes; :mod:`.aws` implements
them on top of boto3 and :mod:`.mock` implements them in memory for tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from codebuild_runner.core.request import StartRequest
from codebuild_runner.core.types import (
    BuildSnapshot,
    CredentialsRef,
    LogsLocation,
    ProjectInfo,
    UploadResult,
)


class BuildServiceClient(ABC):
    """The build service (CodeBuild).

    Implementations raise :class:`~codebuild_runner.core.exceptions.TransientNetworkError`
    when a request could not be executed at all, and
    :class:`~codebuild_runner.core.exceptions.RemoteServiceError` for any
    other failure.
    """

    @abstractmethod
    async def start_build(self, request: StartRequest) -> str:
        """Submit *request* and return the new build id."""

    @abstractmethod
    async def fetch_status(self, build_id: str) -> list[BuildSnapshot]:
        """Return every record the service has for *build_id*."""

    @abstractmethod
    async def stop_build(self, build_id: str) -> None: ...

    @abstractmethod
    async def describe_project(self, project_name: str) -> ProjectInfo:
        """Raises :class:`~codebuild_runner.core.exceptions.ProjectNotFoundError`."""


class ObjectStoreClient(ABC):
    """The object store holding workspace source uploads (S3)."""

    @abstractmethod
    async def is_bucket_versioned(self, bucket: str) -> bool: ...

    @abstractmethod
    async def put_object(
        self,
        bucket: str,
        key: str,
        path: Path,
        *,
        content_md5: str,
        sse_algorithm: str = "",
    ) -> str | None:
        """Upload the file at *path* and return the new object version, if any."""


class LogServiceClient(ABC):
    """The log service the build streams its output to (CloudWatch Logs)."""

    @abstractmethod
    async def get_log_events(
        self,
        group_name: str,
        stream_name: str,
        *,
        next_token: str | None = None,
    ) -> tuple[list[str], str | None]:
        """Return new log messages and the token to continue from."""


class SourceUploader(ABC):
    @abstractmethod
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
        """Package the source under *workspace* and store it at ``bucket/key``.

        Raises:
            SourceUploadError: When the source cannot be packaged or stored.
        """


class LogMonitor(ABC):
    """Follows the build's log stream between status fetches."""

    logs_location: LogsLocation | None = None

    @abstractmethod
    async def poll(self) -> list[str]:
        """Return the log lines written since the previous poll."""


@dataclass
class ClientBundle:
    """Clients built for one invocation from one set of credentials."""

    build_service: BuildServiceClient
    object_store: ObjectStoreClient
    log_service: LogServiceClient
    credentials_descriptor: str = ""


class ClientFactory(ABC):
    @abstractmethod
    def build(self, *, credentials: CredentialsRef, region: str) -> ClientBundle:
        """Create the clients for *region*.

        Raises:
            AuthenticationError: When the credentials or proxy settings are
                unusable.
        """
