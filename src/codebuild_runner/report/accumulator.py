"""Incrementally assembled record of one remote build."""

from __future__ import annotations

from datetime import datetime
from urllib.parse import quote_plus

from pydantic import BaseModel, Field

from codebuild_runner.core.constants import (
    S3_CONSOLE_BASE_URL,
    S3_LOGS_UPLOAD_ERROR_MARKER,
    ArtifactsType,
    BuildPhaseType,
    BuildStatus,
)
from codebuild_runner.core.types import BuildPhase, BuildSnapshot, LogsLocation

FULL_CLONE_DEPTH_DISPLAY = "Full"


def generate_dashboard_url(region: str, project_name: str, build_id: str) -> str:
    return (
        f"https://{region}.console.aws.amazon.com/codesuite/codebuild/projects/"
        f"{project_name}/build/{build_id}/log?region={region}"
    )


def generate_s3_artifact_url(
    artifact_location: str | None,
    artifact_type: str | None,
    base_url: str = S3_CONSOLE_BASE_URL,
) -> str:
    """Console link to the artifact bucket, or ``""`` unless artifacts go to S3."""
    if not artifact_location or artifact_type != ArtifactsType.S3:
        return ""
    return base_url + quote_plus(artifact_location)


def _s3_logs_uploaded(phases: list[BuildPhase]) -> bool:
    for phase in phases:
        if phase.phase_type != BuildPhaseType.UPLOAD_ARTIFACTS:
            continue
        message = phase.first_context_message
        if message is not None and S3_LOGS_UPLOAD_ERROR_MARKER not in message:
            return True
    return False


class BuildReport(BaseModel):
    """Everything known about the remote build, handed to the caller at the end.

    Created empty by the runner and initialized on the first successful
    status fetch. Log lines only ever grow; the CloudWatch and S3 log URLs
    are written once, the first time they become available.
    """

    build_id: str = ""
    build_arn: str = ""
    start_time: datetime | None = None

    source_type: str = ""
    source_location: str = ""
    source_version: str = ""
    git_clone_depth: str = ""
    report_build_status: str = ""

    dashboard_url: str = ""
    s3_artifact_url: str = ""
    s3_bucket_name: str = ""
    artifact_type_override: str = ""

    cloud_watch_logs_url: str | None = None
    s3_logs_url: str | None = None
    logs: list[str] = Field(default_factory=list)

    current_status: BuildStatus | None = None
    phases: list[BuildPhase] = Field(default_factory=list)
    succeeded: bool | None = None

    initialized: bool = False

    def initialize(
        self,
        snapshot: BuildSnapshot,
        *,
        region: str,
        project_name: str,
        artifact_location: str | None = None,
        artifact_type: str | None = None,
        artifact_type_override: str = "",
    ) -> None:
        """Populate identity, source and link fields from the first snapshot.

        Raises:
            RuntimeError: If the report was already initialized.
        """
        if self.initialized:
            raise RuntimeError(f"Report for build {self.build_id} is already initialized")

        self.build_id = snapshot.id
        self.build_arn = snapshot.arn or ""
        self.start_time = snapshot.start_time

        source = snapshot.source
        if source is not None:
            self.source_type = source.type or ""
            self.source_location = source.location or ""
            self.source_version = snapshot.source_version or ""
            depth = source.git_clone_depth
            self.git_clone_depth = str(depth) if depth else FULL_CLONE_DEPTH_DISPLAY
            if source.report_build_status is not None:
                self.report_build_status = str(source.report_build_status).lower()

        self.s3_artifact_url = generate_s3_artifact_url(artifact_location, artifact_type)
        self.s3_bucket_name = artifact_location or ""
        self.artifact_type_override = artifact_type_override
        self.dashboard_url = generate_dashboard_url(region, project_name, snapshot.id)
        self.initialized = True

    def update(
        self,
        snapshot: BuildSnapshot,
        new_log_lines: list[str] | None = None,
        logs_location: LogsLocation | None = None,
    ) -> dict[str, str]:
        """Apply one fetched snapshot.

        Status and phases are overwritten; *new_log_lines* are appended.
        Returns the log URLs that were set by this call, keyed
        ``"cloud_watch_logs_url"`` / ``"s3_logs_url"``.
        """
        self.current_status = snapshot.status
        self.phases = list(snapshot.phases)
        if new_log_lines:
            self.logs.extend(new_log_lines)

        location = logs_location if logs_location is not None else snapshot.logs
        if location is None:
            return {}

        links: dict[str, str] = {}
        if (
            self.cloud_watch_logs_url is None
            and location.group_name
            and location.stream_name
            and location.deep_link
        ):
            self.cloud_watch_logs_url = location.deep_link
            links["cloud_watch_logs_url"] = location.deep_link

        if (
            self.s3_logs_url is None
            and location.s3_deep_link
            and _s3_logs_uploaded(self.phases)
        ):
            self.s3_logs_url = location.s3_deep_link
            links["s3_logs_url"] = location.s3_deep_link

        return links

    def finalize(self, succeeded: bool) -> None:
        """Record the terminal success flag.

        Raises:
            RuntimeError: If the report was already finalized with the
                opposite value.
        """
        if self.succeeded is not None and self.succeeded != succeeded:
            raise RuntimeError(
                f"Report for build {self.build_id} already finalized with succeeded={self.succeeded}"
            )
        self.succeeded = succeeded

    @property
    def phase_error_message(self) -> str:
        """Context messages of every phase that did not succeed, one per line."""
        errors: list[str] = []
        for phase in self.phases:
            if phase.phase_status in (None, BuildStatus.SUCCEEDED, BuildStatus.IN_PROGRESS):
                continue
            for context in phase.contexts:
                if context.message:
                    errors.append(f"{phase.phase_type}: {context.message}")
        return "\n".join(errors)
