from __future__ import annotations

from enum import StrEnum

RESTRICTED_ENV_PREFIX = "CODEBUILD_"

S3_CONSOLE_BASE_URL = "https://console.aws.amazon.com/s3/buckets/"

# Marker written by the service into the UPLOAD_ARTIFACTS phase context when
# log upload to S3 failed.
S3_LOGS_UPLOAD_ERROR_MARKER = "Error uploading logs:"

MIN_BUILD_TIMEOUT_MINUTES = 5
MAX_BUILD_TIMEOUT_MINUTES = 480
MAX_SLEEP_SECONDS = 28800  # eight hours


class SourceControlType(StrEnum):
    WORKSPACE = "workspace"  # zip and upload the CI workspace to the project's S3 source
    PROJECT = "project"  # use the source configured on the project


class BuildStatus(StrEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    FAULT = "FAULT"
    STOPPED = "STOPPED"
    TIMED_OUT = "TIMED_OUT"


class BuildPhaseType(StrEnum):
    SUBMITTED = "SUBMITTED"
    QUEUED = "QUEUED"
    PROVISIONING = "PROVISIONING"
    DOWNLOAD_SOURCE = "DOWNLOAD_SOURCE"
    INSTALL = "INSTALL"
    PRE_BUILD = "PRE_BUILD"
    BUILD = "BUILD"
    POST_BUILD = "POST_BUILD"
    UPLOAD_ARTIFACTS = "UPLOAD_ARTIFACTS"
    FINALIZING = "FINALIZING"
    COMPLETED = "COMPLETED"


class EnvironmentVariableType(StrEnum):
    PLAINTEXT = "PLAINTEXT"
    PARAMETER_REFERENCE = "PARAMETER_STORE"


class ArtifactsType(StrEnum):
    CODEPIPELINE = "CODEPIPELINE"
    S3 = "S3"
    NO_ARTIFACTS = "NO_ARTIFACTS"


class ArtifactNamespace(StrEnum):
    NONE = "NONE"
    BUILD_ID = "BUILD_ID"


class ArtifactPackaging(StrEnum):
    NONE = "NONE"
    ZIP = "ZIP"


class SourceType(StrEnum):
    CODECOMMIT = "CODECOMMIT"
    CODEPIPELINE = "CODEPIPELINE"
    GITHUB = "GITHUB"
    GITHUB_ENTERPRISE = "GITHUB_ENTERPRISE"
    BITBUCKET = "BITBUCKET"
    S3 = "S3"
    NO_SOURCE = "NO_SOURCE"


class SourceAuthType(StrEnum):
    OAUTH = "OAUTH"


class ComputeType(StrEnum):
    BUILD_GENERAL1_SMALL = "BUILD_GENERAL1_SMALL"
    BUILD_GENERAL1_MEDIUM = "BUILD_GENERAL1_MEDIUM"
    BUILD_GENERAL1_LARGE = "BUILD_GENERAL1_LARGE"
    BUILD_GENERAL1_2XLARGE = "BUILD_GENERAL1_2XLARGE"


class EnvironmentType(StrEnum):
    LINUX_CONTAINER = "LINUX_CONTAINER"
    LINUX_GPU_CONTAINER = "LINUX_GPU_CONTAINER"
    ARM_CONTAINER = "ARM_CONTAINER"
    WINDOWS_CONTAINER = "WINDOWS_CONTAINER"


class CacheType(StrEnum):
    NO_CACHE = "NO_CACHE"
    S3 = "S3"
    LOCAL = "LOCAL"


class LogsConfigStatus(StrEnum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class CredentialsType(StrEnum):
    KEYS = "keys"  # access key / secret key / session token on the config
    PROFILE = "profile"  # credentials_id names a shared-credentials profile
