from codebuild_runner.clients.base import (
    BuildServiceClient,
    ClientBundle,
    ClientFactory,
    LogMonitor,
    LogServiceClient,
    ObjectStoreClient,
    SourceUploader,
)
from codebuild_runner.clients.mock import (
    MockBuildService,
    MockClientFactory,
    MockLogService,
    MockObjectStore,
    MockSourceUploader,
)
from codebuild_runner.clients.uploader import S3SourceUploader

__all__ = [
    "BuildServiceClient",
    "ClientBundle",
    "ClientFactory",
    "LogMonitor",
    "LogServiceClient",
    "MockBuildService",
    "MockClientFactory",
    "MockLogService",
    "MockObjectStore",
    "MockSourceUploader",
    "ObjectStoreClient",
    "S3SourceUploader",
    "SourceUploader",
]
