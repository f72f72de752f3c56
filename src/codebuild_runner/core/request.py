"""The StartBuild payload and its optional override groups."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from codebuild_runner.core.types import EnvironmentVariable

_FROZEN = {"populate_by_name": True, "frozen": True}


class ArtifactsOverride(BaseModel):
    type: str | None = None
    location: str | None = None
    name: str | None = None
    namespace_type: str | None = Field(default=None, alias="namespaceType")
    packaging: str | None = None
    path: str | None = None
    encryption_disabled: bool | None = Field(default=None, alias="encryptionDisabled")
    override_artifact_name: bool | None = Field(default=None, alias="overrideArtifactName")

    model_config = _FROZEN


class CacheOverride(BaseModel):
    type: str | None = None
    location: str | None = None

    model_config = _FROZEN


class CloudWatchLogsOverride(BaseModel):
    status: str | None = None
    group_name: str | None = Field(default=None, alias="groupName")
    stream_name: str | None = Field(default=None, alias="streamName")

    model_config = _FROZEN


class S3LogsOverride(BaseModel):
    status: str | None = None
    location: str | None = None

    model_config = _FROZEN


class LogsConfigOverride(BaseModel):
    cloud_watch_logs: CloudWatchLogsOverride | None = Field(default=None, alias="cloudWatchLogs")
    s3_logs: S3LogsOverride | None = Field(default=None, alias="s3Logs")

    model_config = _FROZEN


class SourceAuthOverride(BaseModel):
    type: str

    model_config = _FROZEN


class StartRequest(BaseModel):
    """Structured StartBuild payload, built once per invocation.

    Every ``None`` field (and every absent override group) is left out of
    :meth:`to_api`, so the service applies the project's own setting.
    """

    project_name: str = Field(alias="projectName")
    environment_variables: list[EnvironmentVariable] = Field(
        default_factory=list, alias="environmentVariablesOverride"
    )
    buildspec: str | None = Field(default=None, alias="buildspecOverride")
    timeout_in_minutes: int | None = Field(default=None, alias="timeoutInMinutesOverride")

    artifacts: ArtifactsOverride | None = Field(default=None, alias="artifactsOverride")
    cache: CacheOverride | None = Field(default=None, alias="cacheOverride")
    logs_config: LogsConfigOverride | None = Field(default=None, alias="logsConfigOverride")

    environment_type: str | None = Field(default=None, alias="environmentTypeOverride")
    image: str | None = Field(default=None, alias="imageOverride")
    compute_type: str | None = Field(default=None, alias="computeTypeOverride")
    certificate: str | None = Field(default=None, alias="certificateOverride")
    service_role: str | None = Field(default=None, alias="serviceRoleOverride")
    insecure_ssl: bool | None = Field(default=None, alias="insecureSslOverride")
    privileged_mode: bool | None = Field(default=None, alias="privilegedModeOverride")

    source_type: str | None = Field(default=None, alias="sourceTypeOverride")
    source_location: str | None = Field(default=None, alias="sourceLocationOverride")
    source_auth: SourceAuthOverride | None = Field(default=None, alias="sourceAuthOverride")
    source_version: str | None = Field(default=None, alias="sourceVersion")
    git_clone_depth: int | None = Field(default=None, alias="gitCloneDepthOverride")
    report_build_status: bool | None = Field(default=None, alias="reportBuildStatusOverride")

    secondary_sources: list[dict[str, Any]] | None = Field(
        default=None, alias="secondarySourcesOverride"
    )
    secondary_sources_versions: list[dict[str, Any]] | None = Field(
        default=None, alias="secondarySourcesVersionOverride"
    )
    secondary_artifacts: list[dict[str, Any]] | None = Field(
        default=None, alias="secondaryArtifactsOverride"
    )

    model_config = _FROZEN

    def to_api(self) -> dict[str, Any]:
        """Serialize to the camelCase keyword arguments of ``StartBuild``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
