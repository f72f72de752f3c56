"""Translate the flat textual overrides of a BuildConfig into a StartRequest."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from codebuild_runner.core.config import BuildConfig
from codebuild_runner.core.constants import SourceAuthType, SourceType
from codebuild_runner.core.exceptions import ParseError
from codebuild_runner.core.request import (
    ArtifactsOverride,
    CacheOverride,
    CloudWatchLogsOverride,
    LogsConfigOverride,
    S3LogsOverride,
    SourceAuthOverride,
    StartRequest,
)
from codebuild_runner.core.types import EnvironmentVariable
from codebuild_runner.overrides.secondary import parse_data_list

FULL_CLONE_DEPTH = "Full"

_OAUTH_SOURCE_TYPES = {SourceType.GITHUB, SourceType.BITBUCKET}


def parse_boolean(value: str) -> bool:
    """Permissive: ``"true"`` in any case is true, everything else is false."""
    return value.lower() == "true"


def _parse_int(value: str, label: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ParseError(f"Invalid {label} '{value}': not a number") from exc


def parse_git_clone_depth(value: str) -> int:
    """``""`` and ``"Full"`` mean a full clone (0)."""
    if not value or value == FULL_CLONE_DEPTH:
        return 0
    return _parse_int(value, "git clone depth override")


def parse_timeout(value: str) -> int:
    """``""`` means the project's own timeout (0)."""
    if not value:
        return 0
    return _parse_int(value, "build timeout override")


def _set_fields(pairs: Sequence[tuple[str, Any]]) -> dict[str, Any]:
    return {name: value for name, value in pairs if value != ""}


def resolve_artifacts_override(config: BuildConfig) -> ArtifactsOverride | None:
    fields = _set_fields([
        ("type", config.artifact_type_override),
        ("location", config.artifact_location_override),
        ("name", config.artifact_name_override),
        ("namespace_type", config.artifact_namespace_override),
        ("packaging", config.artifact_packaging_override),
        ("path", config.artifact_path_override),
        ("encryption_disabled", config.artifact_encryption_disabled_override),
        ("override_artifact_name", config.override_artifact_name),
    ])
    if not fields:
        return None
    for flag in ("encryption_disabled", "override_artifact_name"):
        if flag in fields:
            fields[flag] = parse_boolean(fields[flag])
    return ArtifactsOverride(**fields)


def resolve_cache_override(config: BuildConfig) -> CacheOverride | None:
    fields = _set_fields([
        ("type", config.cache_type_override),
        ("location", config.cache_location_override),
    ])
    return CacheOverride(**fields) if fields else None


def resolve_logs_config_override(config: BuildConfig) -> LogsConfigOverride | None:
    cloud_watch = _set_fields([
        ("status", config.cloud_watch_logs_status_override),
        ("group_name", config.cloud_watch_logs_group_name_override),
        ("stream_name", config.cloud_watch_logs_stream_name_override),
    ])
    s3 = _set_fields([
        ("status", config.s3_logs_status_override),
        ("location", config.s3_logs_location_override),
    ])
    if not cloud_watch and not s3:
        return None
    return LogsConfigOverride(
        cloud_watch_logs=CloudWatchLogsOverride(**cloud_watch) if cloud_watch else None,
        s3_logs=S3LogsOverride(**s3) if s3 else None,
    )


def resolve_source_auth_override(source_type: str) -> SourceAuthOverride | None:
    if source_type in _OAUTH_SOURCE_TYPES:
        return SourceAuthOverride(type=SourceAuthType.OAUTH)
    return None


def _optional(value: str) -> str | None:
    return value or None


def _optional_bool(value: str) -> bool | None:
    return parse_boolean(value) if value else None


def _optional_list(value: str) -> list[dict[str, Any]] | None:
    return parse_data_list(value) or None


def build_start_request(
    config: BuildConfig,
    environment_variables: Sequence[EnvironmentVariable] = (),
    *,
    source_version: str | None = None,
) -> StartRequest:
    """Assemble the StartBuild payload for *config*.

    For workspace source, *source_version* is the object version returned
    by the upload; the project-source overrides (type, location, auth,
    clone depth, report status) only apply to project source.

    Raises:
        ParseError: When a numeric override or a secondary JSON list cannot
            be parsed.
    """
    timeout = parse_timeout(config.build_timeout_override)

    fields: dict[str, Any] = {
        "project_name": config.project_name,
        "environment_variables": list(environment_variables),
        "buildspec": _optional(config.build_spec_file),
        "timeout_in_minutes": timeout or None,
        "artifacts": resolve_artifacts_override(config),
        "cache": resolve_cache_override(config),
        "logs_config": resolve_logs_config_override(config),
        "environment_type": _optional(config.environment_type_override),
        "image": _optional(config.image_override),
        "compute_type": _optional(config.compute_type_override),
        "certificate": _optional(config.certificate_override),
        "service_role": _optional(config.service_role_override),
        "insecure_ssl": _optional_bool(config.insecure_ssl_override),
        "privileged_mode": _optional_bool(config.privileged_mode_override),
        "secondary_sources": _optional_list(config.secondary_sources_override),
        "secondary_sources_versions": _optional_list(config.secondary_sources_version_override),
        "secondary_artifacts": _optional_list(config.secondary_artifacts_override),
    }

    if config.uses_workspace_source:
        fields["source_version"] = source_version
    else:
        if config.source_type_override:
            fields["source_type"] = config.source_type_override
            fields["source_auth"] = resolve_source_auth_override(config.source_type_override)
        fields["source_location"] = _optional(config.source_location_override)
        fields["source_version"] = _optional(config.source_version)
        fields["git_clone_depth"] = parse_git_clone_depth(config.git_clone_depth_override)
        fields["report_build_status"] = _optional_bool(config.report_build_status_override)

    return StartRequest(**fields)


def describe_start_request(config: BuildConfig, source_version: str) -> str:
    """Render the operator-facing summary of what is being submitted."""
    lines = [f"Starting build with \n\t> project name: {config.project_name}"]

    entries: list[tuple[str, str]] = []
    if not config.uses_workspace_source:
        entries += [
            ("source type", config.source_type_override),
            ("source location", config.source_location_override),
        ]
        if config.git_clone_depth_override:
            entries.append((
                "git clone depth",
                f"{config.git_clone_depth_override} "
                "(git clone depth is omitted when source provider is Amazon S3)",
            ))
        if config.report_build_status_override:
            entries.append((
                "report build status",
                f"{config.report_build_status_override} "
                "(report build status is valid when source provider is GitHub)",
            ))
    entries += [
        ("source version", source_version),
        ("secondary source overrides", config.secondary_sources_override),
        ("secondary source version overrides", config.secondary_sources_version_override),
        ("artifact type", config.artifact_type_override),
        ("artifact location", config.artifact_location_override),
        ("artifact name", config.artifact_name_override),
        ("override artifact name", config.override_artifact_name),
        ("artifact namespace", config.artifact_namespace_override),
        ("artifact packaging", config.artifact_packaging_override),
        ("artifact path", config.artifact_path_override),
        ("artifact encryption disabled", config.artifact_encryption_disabled_override),
        ("secondary artifact overrides", config.secondary_artifacts_override),
        ("environment variables", config.env_variables),
        ("parameter store variables", config.env_parameters),
        ("build timeout", config.build_timeout_override),
        ("cache type", config.cache_type_override),
        ("cache location", config.cache_location_override),
        ("cloudwatch logs status", config.cloud_watch_logs_status_override),
        ("cloudwatch logs group name", config.cloud_watch_logs_group_name_override),
        ("cloudwatch logs stream name", config.cloud_watch_logs_stream_name_override),
        ("s3 logs status", config.s3_logs_status_override),
        ("s3 logs location", config.s3_logs_location_override),
        ("environment type", config.environment_type_override),
        ("image", config.image_override),
        ("privileged mode override", config.privileged_mode_override),
        ("compute type", config.compute_type_override),
        ("insecure ssl override", config.insecure_ssl_override),
        ("certificate", config.certificate_override),
        ("service role", config.service_role_override),
        ("CloudWatch logs streaming disabled", config.cwl_streaming_disabled),
        ("exception failure mode status", config.exception_failure_mode),
    ]
    lines += [f"\t> {label}: {value}" for label, value in entries if value]

    if config.build_spec_file:
        lines.append(f"\t> build spec: \n{config.build_spec_file}")
    return "\n".join(lines)
