from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr, model_validator

from codebuild_runner.core.constants import LogsConfigStatus, SourceControlType
from codebuild_runner.core.types import CredentialsRef
from codebuild_runner.resilience.polling import PollingPolicy
from codebuild_runner.utils.params import expand_parameters

# Fields holding JSON arrays; hosts that HTML-escape form input hand them over
# with &quot; instead of ".
_JSON_FIELDS = (
    "secondary_sources_override",
    "secondary_sources_version_override",
    "secondary_artifacts_override",
)


def decode_json(value: str) -> str:
    return value.replace("&amp;quot;", '"').replace("&quot;", '"')


class RunnerConfig(BaseModel):
    polling: PollingPolicy = Field(default_factory=PollingPolicy)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = True
    operator_log_path: Path | None = None
    """Optional JSONL file that receives every operator log entry."""

    @classmethod
    def from_env(cls) -> RunnerConfig:
        """Create a :class:`RunnerConfig` from ``CODEBUILD_RUNNER_*`` environment variables.

        Reads the following env vars (all optional):

        * ``CODEBUILD_RUNNER_LOG_LEVEL`` → ``log_level``
        * ``CODEBUILD_RUNNER_LOG_JSON`` → ``log_json`` (``true``/``false``)
        * ``CODEBUILD_RUNNER_OPERATOR_LOG`` → ``operator_log_path``
        * ``CODEBUILD_RUNNER_MIN_SLEEP`` / ``_MAX_SLEEP`` / ``_SLEEP_JITTER`` →
          ``polling`` (see :meth:`PollingPolicy.from_env`)

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {"polling": PollingPolicy.from_env()}

        log_level = os.environ.get("CODEBUILD_RUNNER_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        log_json = os.environ.get("CODEBUILD_RUNNER_LOG_JSON")
        if log_json:
            kwargs["log_json"] = log_json.lower() == "true"

        operator_log = os.environ.get("CODEBUILD_RUNNER_OPERATOR_LOG")
        if operator_log:
            kwargs["operator_log_path"] = Path(operator_log)

        return cls(**kwargs)


class BuildConfig(BaseModel):
    """Immutable snapshot of every user-supplied field for one invocation.

    Fields are plain strings and ``""`` means "not set": ``None`` input is
    normalized to ``""`` and surrounding whitespace is stripped. Numeric and
    boolean overrides stay textual here and are parsed by
    :mod:`codebuild_runner.overrides.resolver` after validation.
    """

    credentials_type: str = ""
    credentials_id: str = ""
    proxy_host: str = ""
    proxy_port: str = ""
    aws_access_key: str = ""
    aws_secret_key: str = Field(default="", repr=False)
    aws_session_token: str = Field(default="", repr=False)
    region: str = ""

    project_name: str = ""
    source_control_type: str = ""
    local_source_path: str = ""
    workspace_subdir: str = ""
    source_version: str = ""
    sse_algorithm: str = ""
    source_type_override: str = ""
    source_location_override: str = ""
    git_clone_depth_override: str = ""
    report_build_status_override: str = ""
    secondary_sources_override: str = ""
    secondary_sources_version_override: str = ""

    artifact_type_override: str = ""
    artifact_location_override: str = ""
    artifact_name_override: str = ""
    artifact_namespace_override: str = ""
    artifact_packaging_override: str = ""
    artifact_path_override: str = ""
    artifact_encryption_disabled_override: str = ""
    override_artifact_name: str = ""
    secondary_artifacts_override: str = ""

    environment_type_override: str = ""
    image_override: str = ""
    compute_type_override: str = ""
    certificate_override: str = ""
    service_role_override: str = ""
    privileged_mode_override: str = ""
    insecure_ssl_override: str = ""

    cache_type_override: str = ""
    cache_location_override: str = ""
    cloud_watch_logs_status_override: str = ""
    cloud_watch_logs_group_name_override: str = ""
    cloud_watch_logs_stream_name_override: str = ""
    s3_logs_status_override: str = ""
    s3_logs_location_override: str = ""

    env_variables: str = ""
    env_parameters: str = ""
    build_spec_file: str = ""
    build_timeout_override: str = ""
    cwl_streaming_disabled: str = ""
    exception_failure_mode: str = ""

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                value = ""
            elif isinstance(value, SecretStr):
                value = value.get_secret_value()
            if isinstance(value, str):
                value = value.strip()
                if key in _JSON_FIELDS:
                    value = decode_json(value)
            normalized[key] = value
        return normalized

    def expand(self, environment: Mapping[str, str]) -> BuildConfig:
        """Return a copy with ``$NAME`` / ``${NAME}`` references expanded."""
        if not environment:
            return self
        expanded = {
            name: expand_parameters(value, environment)
            for name, value in self.model_dump().items()
        }
        return BuildConfig(**expanded)

    def credentials_ref(self) -> CredentialsRef:
        return CredentialsRef(
            credentials_type=self.credentials_type,
            credentials_id=self.credentials_id,
            access_key=self.aws_access_key,
            secret_key=SecretStr(self.aws_secret_key),
            session_token=SecretStr(self.aws_session_token),
            proxy_host=self.proxy_host,
            proxy_port=self.proxy_port,
        )

    @property
    def uses_workspace_source(self) -> bool:
        return self.source_control_type == SourceControlType.WORKSPACE

    @property
    def exception_failure_mode_enabled(self) -> bool:
        return self.exception_failure_mode.upper() == LogsConfigStatus.ENABLED
