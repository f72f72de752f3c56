"""Pure pass/fail checks run before any network call.

Each check returns ``""`` when the configuration is acceptable, otherwise a
human-readable description of the first problem found.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from codebuild_runner.core.config import BuildConfig
from codebuild_runner.core.constants import (
    MAX_BUILD_TIMEOUT_MINUTES,
    MIN_BUILD_TIMEOUT_MINUTES,
    RESTRICTED_ENV_PREFIX,
    ArtifactNamespace,
    ArtifactPackaging,
    ArtifactsType,
    CacheType,
    ComputeType,
    EnvironmentType,
    LogsConfigStatus,
    SourceControlType,
    SourceType,
)
from codebuild_runner.core.types import EnvironmentVariable

PROJECT_REQUIRED_ERROR = "CodeBuild project name is required"
SOURCE_CONTROL_TYPE_REQUIRED_ERROR = (
    "Source control type is required and must be 'workspace' or 'project'"
)
REGION_REQUIRED_ERROR = "Region is required"
BUILD_TIMEOUT_ERROR = (
    f"Build timeout override must be a number between {MIN_BUILD_TIMEOUT_MINUTES} "
    f"and {MAX_BUILD_TIMEOUT_MINUTES} (minutes)"
)
GIT_CLONE_DEPTH_ERROR = "Git clone depth override must be 'Full' or a non-negative number"
ARTIFACT_LOCATION_REQUIRED_ERROR = "Artifact location override is required when artifact type is S3"
CACHE_LOCATION_REQUIRED_ERROR = "Cache location override is required when cache type is S3"
S3_LOGS_LOCATION_REQUIRED_ERROR = (
    "S3 logs location override is required when S3 logs status is ENABLED"
)

_BOOLEAN_VALUES = ("true", "false")


def _invalid_choice(label: str, value: str, choices: type[StrEnum]) -> str:
    allowed = ", ".join(member.value for member in choices)
    return f"Invalid {label} override '{value}'. Must be one of: {allowed}"


def _is_int(value: str) -> bool:
    try:
        int(value)
    except ValueError:
        return False
    return True


def check_essential_config(config: BuildConfig) -> str:
    """First pass: fields without which no build can be started."""
    if not config.project_name:
        return PROJECT_REQUIRED_ERROR

    if config.source_control_type not in {t.value for t in SourceControlType}:
        return SOURCE_CONTROL_TYPE_REQUIRED_ERROR

    if not config.region:
        return REGION_REQUIRED_ERROR

    timeout = config.build_timeout_override
    if timeout:
        if not _is_int(timeout):
            return BUILD_TIMEOUT_ERROR
        if not MIN_BUILD_TIMEOUT_MINUTES <= int(timeout) <= MAX_BUILD_TIMEOUT_MINUTES:
            return BUILD_TIMEOUT_ERROR

    return ""


def check_start_build_overrides_config(config: BuildConfig) -> str:
    """Second pass: consistency of the optional per-invocation overrides.

    A group counts as specified only through its non-empty fields; beyond the
    documented location pairs no cross-field exclusivity is enforced.
    """
    enumerated: list[tuple[str, str, type[StrEnum]]] = [
        ("artifact type", config.artifact_type_override, ArtifactsType),
        ("artifact namespace", config.artifact_namespace_override, ArtifactNamespace),
        ("artifact packaging", config.artifact_packaging_override, ArtifactPackaging),
        ("source type", config.source_type_override, SourceType),
        ("compute type", config.compute_type_override, ComputeType),
        ("environment type", config.environment_type_override, EnvironmentType),
        ("cache type", config.cache_type_override, CacheType),
        ("CloudWatch logs status", config.cloud_watch_logs_status_override, LogsConfigStatus),
        ("S3 logs status", config.s3_logs_status_override, LogsConfigStatus),
    ]
    for label, value, choices in enumerated:
        if value and value not in {member.value for member in choices}:
            return _invalid_choice(label, value, choices)

    booleans = [
        ("insecure SSL", config.insecure_ssl_override),
        ("privileged mode", config.privileged_mode_override),
        ("report build status", config.report_build_status_override),
        ("artifact encryption disabled", config.artifact_encryption_disabled_override),
        ("override artifact name", config.override_artifact_name),
        ("CloudWatch logs streaming disabled", config.cwl_streaming_disabled),
    ]
    for label, value in booleans:
        if value and value.lower() not in _BOOLEAN_VALUES:
            return f"Invalid {label} override '{value}'. Must be 'true' or 'false'"

    depth = config.git_clone_depth_override
    if depth and depth != "Full" and not (_is_int(depth) and int(depth) >= 0):
        return GIT_CLONE_DEPTH_ERROR

    if config.artifact_type_override == ArtifactsType.S3 and not config.artifact_location_override:
        return ARTIFACT_LOCATION_REQUIRED_ERROR

    if config.cache_type_override == CacheType.S3 and not config.cache_location_override:
        return CACHE_LOCATION_REQUIRED_ERROR

    if (
        config.s3_logs_status_override == LogsConfigStatus.ENABLED
        and not config.s3_logs_location_override
    ):
        return S3_LOGS_LOCATION_REQUIRED_ERROR

    return ""


def validate_config(config: BuildConfig) -> str:
    """Run both passes and return the first error, or ``""``."""
    return check_essential_config(config) or check_start_build_overrides_config(config)


def env_variables_have_restricted_prefix(variables: Iterable[EnvironmentVariable]) -> bool:
    return any(v.name.startswith(RESTRICTED_ENV_PREFIX) for v in variables)


def check_source_type_s3(project_source_type: str | None) -> bool:
    return project_source_type == SourceType.S3
