from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, SecretStr

from codebuild_runner.core.constants import BuildPhaseType, BuildStatus, EnvironmentVariableType


class EnvironmentVariable(BaseModel):
    """One ``{name, value}`` pair passed to the build, tagged with its kind."""

    name: str
    value: str
    type: EnvironmentVariableType = EnvironmentVariableType.PLAINTEXT

    model_config = {"frozen": True}

    def to_api(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value, "type": str(self.type)}


# ---------------------------------------------------------------------------
# Build snapshot: one BatchGetBuilds record
# ---------------------------------------------------------------------------


class PhaseContext(BaseModel):
    status_code: str | None = Field(default=None, alias="statusCode")
    message: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}


class BuildPhase(BaseModel):
    phase_type: str | None = Field(default=None, alias="phaseType")
    phase_status: str | None = Field(default=None, alias="phaseStatus")
    duration_in_seconds: int | None = Field(default=None, alias="durationInSeconds")
    contexts: list[PhaseContext] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def first_context_message(self) -> str | None:
        if not self.contexts:
            return None
        return self.contexts[0].message


class LogsLocation(BaseModel):
    """Pointers to where the service is writing the build log."""

    group_name: str | None = Field(default=None, alias="groupName")
    stream_name: str | None = Field(default=None, alias="streamName")
    deep_link: str | None = Field(default=None, alias="deepLink")
    s3_deep_link: str | None = Field(default=None, alias="s3DeepLink")

    model_config = {"populate_by_name": True, "frozen": True}


class BuildSource(BaseModel):
    type: str | None = None
    location: str | None = None
    git_clone_depth: int | None = Field(default=None, alias="gitCloneDepth")
    report_build_status: bool | None = Field(default=None, alias="reportBuildStatus")

    model_config = {"populate_by_name": True, "frozen": True}


class BuildArtifacts(BaseModel):
    location: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}


class BuildSnapshot(BaseModel):
    """A point-in-time read of the remote build, superseded by the next fetch."""

    id: str
    arn: str | None = None
    status: BuildStatus = Field(alias="buildStatus")
    current_phase: str | None = Field(default=None, alias="currentPhase")
    start_time: datetime | None = Field(default=None, alias="startTime")
    source_version: str | None = Field(default=None, alias="sourceVersion")
    source: BuildSource | None = None
    phases: list[BuildPhase] = Field(default_factory=list)
    artifacts: BuildArtifacts | None = None
    logs: LogsLocation | None = None

    model_config = {"populate_by_name": True, "frozen": True}

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> BuildSnapshot:
        """Create from a service build record with camelCase field names."""
        return cls.model_validate(data)

    @property
    def in_progress(self) -> bool:
        return self.status == BuildStatus.IN_PROGRESS

    @property
    def phase_completed(self) -> bool:
        return self.current_phase == BuildPhaseType.COMPLETED


# ---------------------------------------------------------------------------
# Collaborator inputs / outputs
# ---------------------------------------------------------------------------


class ProjectInfo(BaseModel):
    """Artifact and source settings of a build project, read before submission."""

    name: str
    artifact_location: str | None = None
    artifact_type: str | None = None
    source_location: str | None = None
    source_type: str | None = None


class UploadResult(BaseModel):
    object_location: str
    object_version: str | None = None


class CredentialsRef(BaseModel):
    """Everything the client factory needs to authenticate, opaque to the runner."""

    credentials_type: str = ""
    credentials_id: str = ""
    access_key: str = ""
    secret_key: SecretStr = SecretStr("")
    session_token: SecretStr = SecretStr("")
    proxy_host: str = ""
    proxy_port: str = ""

    @property
    def has_proxy(self) -> bool:
        return bool(self.proxy_host)
