from codebuild_runner.overrides.envvars import (
    ENV_VARIABLE_NAMESPACE_ERROR,
    ENV_VARIABLE_SYNTAX_ERROR,
    parse_environment_variables,
)
from codebuild_runner.overrides.resolver import (
    build_start_request,
    describe_start_request,
    parse_boolean,
    parse_git_clone_depth,
    parse_timeout,
    resolve_artifacts_override,
    resolve_cache_override,
    resolve_logs_config_override,
    resolve_source_auth_override,
)
from codebuild_runner.overrides.secondary import INVALID_SECONDARY_ERROR, parse_data_list

__all__ = [
    "ENV_VARIABLE_NAMESPACE_ERROR",
    "ENV_VARIABLE_SYNTAX_ERROR",
    "INVALID_SECONDARY_ERROR",
    "build_start_request",
    "describe_start_request",
    "parse_boolean",
    "parse_data_list",
    "parse_environment_variables",
    "parse_git_clone_depth",
    "parse_timeout",
    "resolve_artifacts_override",
    "resolve_cache_override",
    "resolve_logs_config_override",
    "resolve_source_auth_override",
]
