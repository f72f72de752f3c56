"""Packages workspace source into a zip and uploads it to the project's S3 source."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import os
import shutil
import tempfile
import zipfile
from pathlib import Path

from codebuild_runner.clients.base import ObjectStoreClient, SourceUploader
from codebuild_runner.core.exceptions import SourceUploadError
from codebuild_runner.core.types import UploadResult
from codebuild_runner.utils.logging import get_logger

logger = get_logger(__name__)

S3_ARN_PREFIX = "arn:aws:s3:::"
AES256 = "AES256"


def split_s3_location(location: str) -> tuple[str, str]:
    """Split ``bucket/path/to/key.zip`` (optionally ARN-prefixed) into bucket and key."""
    if location.startswith(S3_ARN_PREFIX):
        location = location[len(S3_ARN_PREFIX):]
    bucket, _, key = location.partition("/")
    return bucket, key


def zip_md5(path: Path) -> str:
    """Base64-encoded MD5 digest of *path*, as expected by ``Content-MD5``."""
    digest = hashlib.md5()  # noqa: S324
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


def _zip_directory(source: Path, target: Path) -> None:
    with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as archive:
        for root, dirs, files in os.walk(source):
            dirs.sort()
            for name in sorted(files):
                file_path = Path(root) / name
                if file_path == target:
                    continue
                archive.write(file_path, file_path.relative_to(source).as_posix())


def _resolve_inside(workspace: Path, relative: str) -> Path:
    workspace = workspace.resolve()
    candidate = (workspace / relative).resolve()
    if candidate != workspace and workspace not in candidate.parents:
        raise SourceUploadError(
            f"Path '{relative}' must be inside the workspace {workspace}",
            details={"path": relative},
        )
    if not candidate.exists():
        raise SourceUploadError(
            f"Path '{relative}' does not exist in the workspace {workspace}",
            details={"path": relative},
        )
    return candidate


class S3SourceUploader(SourceUploader):
    """Zips the workspace (or a part of it) and stores it through *object_store*.

    Without ``local_source_path`` the workspace directory, or its
    ``workspace_subdir``, is zipped. With it, that path inside the workspace
    is uploaded: a ``.zip`` file as is, any other file or directory zipped.
    The temporary archive is always deleted afterwards.
    """

    def __init__(self, object_store: ObjectStoreClient) -> None:
        self._object_store = object_store

    def _package(self, workspace: Path, key: str, local_source_path: str, workspace_subdir: str) -> Path:
        if not workspace.is_dir():
            raise SourceUploadError(f"Workspace {workspace} does not exist")

        if local_source_path:
            source = _resolve_inside(workspace, local_source_path)
        elif workspace_subdir:
            source = _resolve_inside(workspace, workspace_subdir)
            if not source.is_dir():
                raise SourceUploadError(f"Workspace subdirectory '{workspace_subdir}' is not a directory")
        else:
            source = workspace

        fd, name = tempfile.mkstemp(suffix=f"-{Path(key).name or 'source.zip'}")
        os.close(fd)
        target = Path(name)
        try:
            if source.is_dir():
                _zip_directory(source, target)
            elif source.suffix == ".zip":
                shutil.copyfile(source, target)
            else:
                with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as archive:
                    archive.write(source, source.name)
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise SourceUploadError(f"Failed to package source {source}: {exc}") from exc
        logger.info("source_packaged", source=str(source), archive=str(target))
        return target

    async def upload(
        self,
        workspace: Path,
        *,
        bucket: str,
        key: str,
        local_source_path: str = "",
        workspace_subdir: str = "",
        sse_algorithm: str = "",
    ) -> UploadResult:
        archive = await asyncio.to_thread(
            self._package, Path(workspace), key, local_source_path, workspace_subdir
        )
        try:
            content_md5 = await asyncio.to_thread(zip_md5, archive)
            logger.info("source_upload", bucket=bucket, key=key, content_md5=content_md5)
            version = await self._object_store.put_object(
                bucket,
                key,
                archive,
                content_md5=content_md5,
                sse_algorithm=AES256 if sse_algorithm else "",
            )
        finally:
            archive.unlink(missing_ok=True)
        return UploadResult(object_location=f"{bucket}/{key}", object_version=version)
