"""boto3-backed implementations of the client interfaces.

boto3 is synchronous, so every SDK call runs in :func:`asyncio.to_thread`.
botocore errors are translated at this boundary: connection and HTTP
transport failures become :class:`TransientNetworkError`, everything else
becomes :class:`RemoteServiceError`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    HTTPClientError,
)
from botocore.exceptions import ConnectionError as BotoConnectionError

from codebuild_runner.clients.base import (
    BuildServiceClient,
    ClientBundle,
    ClientFactory,
    LogServiceClient,
    ObjectStoreClient,
)
from codebuild_runner.core.constants import CredentialsType
from codebuild_runner.core.exceptions import (
    AuthenticationError,
    ProjectNotFoundError,
    RemoteServiceError,
    TransientNetworkError,
)
from codebuild_runner.core.request import StartRequest
from codebuild_runner.core.types import BuildSnapshot, CredentialsRef, ProjectInfo
from codebuild_runner.utils.logging import get_logger

logger = get_logger(__name__)

_RESOURCE_NOT_FOUND = "ResourceNotFoundException"


async def _call(fn: Callable[..., Any], /, **kwargs: Any) -> Any:
    try:
        return await asyncio.to_thread(fn, **kwargs)
    except (BotoConnectionError, HTTPClientError) as exc:
        raise TransientNetworkError(str(exc)) from exc
    except ClientError as exc:
        error = exc.response.get("Error", {})
        raise RemoteServiceError(
            error.get("Message") or str(exc),
            code=error.get("Code"),
            details={"operation": exc.operation_name},
        ) from exc
    except BotoCoreError as exc:
        raise RemoteServiceError(str(exc)) from exc


class AwsBuildServiceClient(BuildServiceClient):
    def __init__(self, client: Any) -> None:
        self._client = client

    async def start_build(self, request: StartRequest) -> str:
        response = await _call(self._client.start_build, **request.to_api())
        return str(response["build"]["id"])

    async def fetch_status(self, build_id: str) -> list[BuildSnapshot]:
        response = await _call(self._client.batch_get_builds, ids=[build_id])
        return [BuildSnapshot.from_api(build) for build in response.get("builds", [])]

    async def stop_build(self, build_id: str) -> None:
        await _call(self._client.stop_build, id=build_id)

    async def describe_project(self, project_name: str) -> ProjectInfo:
        response = await _call(self._client.batch_get_projects, names=[project_name])
        projects = response.get("projects", [])
        if not projects:
            raise ProjectNotFoundError(
                f"Project {project_name} does not exist.", code=_RESOURCE_NOT_FOUND
            )
        project = projects[0]
        artifacts = project.get("artifacts") or {}
        source = project.get("source") or {}
        return ProjectInfo(
            name=project.get("name", project_name),
            artifact_location=artifacts.get("location"),
            artifact_type=artifacts.get("type"),
            source_location=source.get("location"),
            source_type=source.get("type"),
        )


class AwsObjectStoreClient(ObjectStoreClient):
    def __init__(self, client: Any) -> None:
        self._client = client

    async def is_bucket_versioned(self, bucket: str) -> bool:
        response = await _call(self._client.get_bucket_versioning, Bucket=bucket)
        return response.get("Status") == "Enabled"

    def _put_sync(self, bucket: str, key: str, path: Path, extra: dict[str, Any]) -> dict[str, Any]:
        with path.open("rb") as body:
            return self._client.put_object(Bucket=bucket, Key=key, Body=body, **extra)

    async def put_object(
        self,
        bucket: str,
        key: str,
        path: Path,
        *,
        content_md5: str,
        sse_algorithm: str = "",
    ) -> str | None:
        extra: dict[str, Any] = {"ContentMD5": content_md5}
        if sse_algorithm:
            extra["ServerSideEncryption"] = sse_algorithm
        response = await _call(self._put_sync, bucket=bucket, key=key, path=path, extra=extra)
        return response.get("VersionId")


class AwsLogServiceClient(LogServiceClient):
    def __init__(self, client: Any) -> None:
        self._client = client

    async def get_log_events(
        self,
        group_name: str,
        stream_name: str,
        *,
        next_token: str | None = None,
    ) -> tuple[list[str], str | None]:
        kwargs: dict[str, Any] = {
            "logGroupName": group_name,
            "logStreamName": stream_name,
            "startFromHead": True,
        }
        if next_token:
            kwargs["nextToken"] = next_token
        try:
            response = await _call(self._client.get_log_events, **kwargs)
        except RemoteServiceError as exc:
            # The stream is created a little after the build reports it.
            if exc.code == _RESOURCE_NOT_FOUND:
                return [], next_token
            raise
        lines = [event.get("message", "").rstrip("\n") for event in response.get("events", [])]
        return lines, response.get("nextForwardToken", next_token)


class AwsClientFactory(ClientFactory):
    """Builds boto3 clients from access keys, a named profile, or the default chain.

    ``credentials_type == "profile"`` uses ``credentials_id`` as the profile
    name. Otherwise explicit access keys are used when present, falling back
    to boto3's default credential chain (environment, instance role).
    """

    def __init__(self, *, user_agent_extra: str = "codebuild-runner") -> None:
        self._user_agent_extra = user_agent_extra

    def _session(self, credentials: CredentialsRef, region: str) -> tuple[Any, str]:
        if credentials.credentials_type == CredentialsType.PROFILE:
            if not credentials.credentials_id:
                raise AuthenticationError("A profile name is required for profile credentials")
            session = boto3.Session(
                profile_name=credentials.credentials_id, region_name=region
            )
            return session, f"Using credentials provided by profile {credentials.credentials_id}"

        if credentials.access_key:
            session = boto3.Session(
                aws_access_key_id=credentials.access_key,
                aws_secret_access_key=credentials.secret_key.get_secret_value(),
                aws_session_token=credentials.session_token.get_secret_value() or None,
                region_name=region,
            )
            masked = credentials.access_key[:4] + "*" * max(len(credentials.access_key) - 4, 0)
            return session, f"Using access key {masked}"

        return boto3.Session(region_name=region), "Using default AWS credential chain"

    def _config(self, credentials: CredentialsRef) -> Config:
        kwargs: dict[str, Any] = {"user_agent_extra": self._user_agent_extra}
        if credentials.has_proxy:
            proxy = f"http://{credentials.proxy_host}"
            if credentials.proxy_port:
                try:
                    port = int(credentials.proxy_port)
                except ValueError as exc:
                    raise AuthenticationError(
                        f"Invalid proxy port '{credentials.proxy_port}'"
                    ) from exc
                proxy += f":{port}"
            kwargs["proxies"] = {"http": proxy, "https": proxy}
        return Config(**kwargs)

    def build(self, *, credentials: CredentialsRef, region: str) -> ClientBundle:
        config = self._config(credentials)
        try:
            session, descriptor = self._session(credentials, region)
            if session.get_credentials() is None:
                raise AuthenticationError("No AWS credentials could be resolved")
            codebuild = session.client("codebuild", config=config)
            s3 = session.client("s3", config=config)
            logs = session.client("logs", config=config)
        except BotoCoreError as exc:
            raise AuthenticationError(str(exc)) from exc

        logger.debug("aws_clients_built", region=region, credentials=descriptor)
        return ClientBundle(
            build_service=AwsBuildServiceClient(codebuild),
            object_store=AwsObjectStoreClient(s3),
            log_service=AwsLogServiceClient(logs),
            credentials_descriptor=descriptor,
        )
