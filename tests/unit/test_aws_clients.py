"""Tests for clients/aws.py: boto3 adapters and the client factory."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
    ReadTimeoutError,
)
from pydantic import SecretStr

from codebuild_runner.clients.aws import (
    AwsBuildServiceClient,
    AwsClientFactory,
    AwsLogServiceClient,
    AwsObjectStoreClient,
)
from codebuild_runner.core.constants import BuildStatus
from codebuild_runner.core.exceptions import (
    AuthenticationError,
    ProjectNotFoundError,
    RemoteServiceError,
    TransientNetworkError,
)
from codebuild_runner.core.request import StartRequest
from codebuild_runner.core.types import CredentialsRef


def _client_error(code: str, message: str = "boom", operation: str = "BatchGetBuilds") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


BUILD_RECORD = {
    "id": "project:1234",
    "arn": "arn:aws:codebuild:us-east-1:123456789012:build/project:1234",
    "buildStatus": "IN_PROGRESS",
    "currentPhase": "BUILD",
    "startTime": datetime(2024, 5, 1, tzinfo=timezone.utc),
    "sourceVersion": "main",
    "source": {"type": "GITHUB", "location": "https://github.com/org/repo", "gitCloneDepth": 1},
    "phases": [
        {"phaseType": "SUBMITTED", "phaseStatus": "SUCCEEDED", "durationInSeconds": 0},
        {"phaseType": "BUILD"},
    ],
    "logs": {
        "groupName": "/aws/codebuild/project",
        "streamName": "1234",
        "deepLink": "https://console.aws.amazon.com/cloudwatch/home",
    },
    "artifacts": {"location": "arn:aws:s3:::artifacts/project"},
    "queuedTimeoutInMinutes": 480,
}


# ---------------------------------------------------------------------------
# AwsBuildServiceClient
# ---------------------------------------------------------------------------


async def test_start_build_sends_api_payload() -> None:
    sdk = MagicMock()
    sdk.start_build.return_value = {"build": {"id": "project:1234"}}
    client = AwsBuildServiceClient(sdk)

    build_id = await client.start_build(StartRequest(project_name="project", source_version="main"))

    assert build_id == "project:1234"
    sdk.start_build.assert_called_once_with(
        projectName="project", environmentVariablesOverride=[], sourceVersion="main"
    )


async def test_fetch_status_parses_build_records() -> None:
    sdk = MagicMock()
    sdk.batch_get_builds.return_value = {"builds": [BUILD_RECORD], "buildsNotFound": []}

    snapshots = await AwsBuildServiceClient(sdk).fetch_status("project:1234")

    sdk.batch_get_builds.assert_called_once_with(ids=["project:1234"])
    assert len(snapshots) == 1
    snapshot = snapshots[0]
    assert snapshot.status == BuildStatus.IN_PROGRESS
    assert snapshot.source is not None and snapshot.source.git_clone_depth == 1
    assert snapshot.logs is not None and snapshot.logs.stream_name == "1234"
    assert snapshot.phases[1].phase_status is None


async def test_fetch_status_returns_empty_list_for_unknown_build() -> None:
    sdk = MagicMock()
    sdk.batch_get_builds.return_value = {"builds": [], "buildsNotFound": ["x"]}
    assert await AwsBuildServiceClient(sdk).fetch_status("x") == []


async def test_stop_build() -> None:
    sdk = MagicMock()
    await AwsBuildServiceClient(sdk).stop_build("project:1234")
    sdk.stop_build.assert_called_once_with(id="project:1234")


async def test_describe_project() -> None:
    sdk = MagicMock()
    sdk.batch_get_projects.return_value = {
        "projects": [
            {
                "name": "project",
                "artifacts": {"type": "S3", "location": "artifact-bucket"},
                "source": {"type": "S3", "location": "source-bucket/source.zip"},
            }
        ]
    }
    project = await AwsBuildServiceClient(sdk).describe_project("project")
    assert project.artifact_type == "S3"
    assert project.artifact_location == "artifact-bucket"
    assert project.source_location == "source-bucket/source.zip"


async def test_describe_missing_project() -> None:
    sdk = MagicMock()
    sdk.batch_get_projects.return_value = {"projects": [], "projectsNotFound": ["project"]}
    with pytest.raises(ProjectNotFoundError, match="Project project does not exist."):
        await AwsBuildServiceClient(sdk).describe_project("project")


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "error",
    [
        EndpointConnectionError(endpoint_url="https://codebuild.us-east-1.amazonaws.com"),
        ReadTimeoutError(endpoint_url="https://codebuild.us-east-1.amazonaws.com"),
    ],
)
async def test_transport_errors_are_transient(error: Exception) -> None:
    sdk = MagicMock()
    sdk.batch_get_builds.side_effect = error
    with pytest.raises(TransientNetworkError) as exc_info:
        await AwsBuildServiceClient(sdk).fetch_status("b")
    assert exc_info.value.is_retryable is True


async def test_client_error_keeps_code_and_message() -> None:
    sdk = MagicMock()
    sdk.start_build.side_effect = _client_error("AccountLimitExceededException", "Too many builds", "StartBuild")
    with pytest.raises(RemoteServiceError) as exc_info:
        await AwsBuildServiceClient(sdk).start_build(StartRequest(project_name="p"))
    exc = exc_info.value
    assert not isinstance(exc, TransientNetworkError)
    assert exc.message == "Too many builds"
    assert exc.code == "AccountLimitExceededException"
    assert exc.details == {"operation": "StartBuild"}


async def test_other_botocore_errors_are_remote_errors() -> None:
    sdk = MagicMock()
    sdk.stop_build.side_effect = NoCredentialsError()
    with pytest.raises(RemoteServiceError):
        await AwsBuildServiceClient(sdk).stop_build("b")


# ---------------------------------------------------------------------------
# AwsObjectStoreClient
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(("status", "expected"), [("Enabled", True), ("Suspended", False), (None, False)])
async def test_bucket_versioning(status: str | None, expected: bool) -> None:
    sdk = MagicMock()
    sdk.get_bucket_versioning.return_value = {"Status": status} if status else {}
    assert await AwsObjectStoreClient(sdk).is_bucket_versioned("bucket") is expected
    sdk.get_bucket_versioning.assert_called_once_with(Bucket="bucket")


async def test_put_object(tmp_path: Path) -> None:
    archive = tmp_path / "source.zip"
    archive.write_bytes(b"PK")
    sdk = MagicMock()
    sdk.put_object.return_value = {"VersionId": "3sL4kqtJ"}

    version = await AwsObjectStoreClient(sdk).put_object(
        "bucket", "path/source.zip", archive, content_md5="md5==", sse_algorithm="AES256"
    )

    assert version == "3sL4kqtJ"
    kwargs = sdk.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "bucket"
    assert kwargs["Key"] == "path/source.zip"
    assert kwargs["ContentMD5"] == "md5=="
    assert kwargs["ServerSideEncryption"] == "AES256"


async def test_put_object_without_encryption_or_version(tmp_path: Path) -> None:
    archive = tmp_path / "source.zip"
    archive.write_bytes(b"PK")
    sdk = MagicMock()
    sdk.put_object.return_value = {}

    version = await AwsObjectStoreClient(sdk).put_object("b", "k", archive, content_md5="x")

    assert version is None
    assert "ServerSideEncryption" not in sdk.put_object.call_args.kwargs


# ---------------------------------------------------------------------------
# AwsLogServiceClient
# ---------------------------------------------------------------------------


async def test_get_log_events() -> None:
    sdk = MagicMock()
    sdk.get_log_events.return_value = {
        "events": [{"message": "[Container] Running\n"}, {"message": "done"}],
        "nextForwardToken": "f/2",
    }

    lines, token = await AwsLogServiceClient(sdk).get_log_events("group", "stream", next_token="f/1")

    assert lines == ["[Container] Running", "done"]
    assert token == "f/2"
    sdk.get_log_events.assert_called_once_with(
        logGroupName="group", logStreamName="stream", startFromHead=True, nextToken="f/1"
    )


async def test_get_log_events_first_call_has_no_token() -> None:
    sdk = MagicMock()
    sdk.get_log_events.return_value = {"events": [], "nextForwardToken": "f/0"}
    await AwsLogServiceClient(sdk).get_log_events("group", "stream")
    assert "nextToken" not in sdk.get_log_events.call_args.kwargs


async def test_missing_stream_reads_as_empty() -> None:
    sdk = MagicMock()
    sdk.get_log_events.side_effect = _client_error("ResourceNotFoundException", operation="GetLogEvents")
    assert await AwsLogServiceClient(sdk).get_log_events("g", "s", next_token="t") == ([], "t")


async def test_other_log_errors_propagate() -> None:
    sdk = MagicMock()
    sdk.get_log_events.side_effect = _client_error("AccessDeniedException", operation="GetLogEvents")
    with pytest.raises(RemoteServiceError):
        await AwsLogServiceClient(sdk).get_log_events("g", "s")


# ---------------------------------------------------------------------------
# AwsClientFactory
# ---------------------------------------------------------------------------


def test_factory_with_access_keys() -> None:
    credentials = CredentialsRef(
        credentials_type="keys",
        access_key="AKIAEXAMPLE",
        secret_key=SecretStr("s3cr3t"),
    )
    with patch("codebuild_runner.clients.aws.boto3.Session") as session_cls:
        bundle = AwsClientFactory().build(credentials=credentials, region="eu-west-1")

    session_cls.assert_called_once_with(
        aws_access_key_id="AKIAEXAMPLE",
        aws_secret_access_key="s3cr3t",
        aws_session_token=None,
        region_name="eu-west-1",
    )
    services = [c.args[0] for c in session_cls.return_value.client.call_args_list]
    assert services == ["codebuild", "s3", "logs"]
    assert bundle.credentials_descriptor == "Using access key AKIA*******"
    assert isinstance(bundle.build_service, AwsBuildServiceClient)


def test_factory_with_profile() -> None:
    credentials = CredentialsRef(credentials_type="profile", credentials_id="ci")
    with patch("codebuild_runner.clients.aws.boto3.Session") as session_cls:
        bundle = AwsClientFactory().build(credentials=credentials, region="us-east-1")
    session_cls.assert_called_once_with(profile_name="ci", region_name="us-east-1")
    assert bundle.credentials_descriptor == "Using credentials provided by profile ci"


def test_factory_profile_requires_name() -> None:
    with pytest.raises(AuthenticationError):
        AwsClientFactory().build(credentials=CredentialsRef(credentials_type="profile"), region="us-east-1")


def test_factory_unknown_profile() -> None:
    credentials = CredentialsRef(credentials_type="profile", credentials_id="missing")
    with patch("codebuild_runner.clients.aws.boto3.Session", side_effect=ProfileNotFound(profile="missing")):
        with pytest.raises(AuthenticationError, match="missing"):
            AwsClientFactory().build(credentials=credentials, region="us-east-1")


def test_factory_default_chain_without_credentials() -> None:
    with patch("codebuild_runner.clients.aws.boto3.Session") as session_cls:
        session_cls.return_value.get_credentials.return_value = None
        with pytest.raises(AuthenticationError, match="No AWS credentials"):
            AwsClientFactory().build(credentials=CredentialsRef(), region="us-east-1")


def test_factory_proxy_config() -> None:
    credentials = CredentialsRef(proxy_host="proxy.internal", proxy_port="3128")
    with patch("codebuild_runner.clients.aws.boto3.Session") as session_cls:
        AwsClientFactory(user_agent_extra="ci-plugin").build(credentials=credentials, region="us-east-1")

    config = session_cls.return_value.client.call_args.kwargs["config"]
    assert config.proxies == {"http": "http://proxy.internal:3128", "https": "http://proxy.internal:3128"}
    assert config.user_agent_extra == "ci-plugin"


def test_factory_rejects_bad_proxy_port() -> None:
    credentials = CredentialsRef(proxy_host="proxy.internal", proxy_port="http")
    with pytest.raises(AuthenticationError, match="Invalid proxy port"):
        AwsClientFactory().build(credentials=credentials, region="us-east-1")
