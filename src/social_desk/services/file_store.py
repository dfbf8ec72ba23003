# src/social_desk/services/file_store.py
"""Disk-backed storage for post media, partitioned by post identifier.

Layout under the upload root::

    <root>/temp/<staged name>        uploads waiting to be committed
    <root>/<post id>/<filename>      committed artifacts

Every caller-supplied path segment is reduced to its base name before it
touches the filesystem, and resolved paths are checked against the root.
Uploads land in the staging area first and are promoted with a rename, so
a committed file is never visible half-written.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Final

from social_desk.core.settings import settings

logger = logging.getLogger(__name__)

STAGING_DIR_NAME: Final[str] = "temp"
CHUNK_SIZE: Final[int] = 1024 * 1024
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"
CONTENT_TYPES: Final[dict[str, str]] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
}
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_MAX_STEM_BYTES: Final[int] = 120
MAX_NAME_BYTES: Final[int] = 255


class FileStoreError(RuntimeError):
    """Base exception raised for media storage failures."""


class InvalidMediaTypeError(FileStoreError):
    """Raised when an upload is not an allowed image or video type."""


class FileTooLargeError(FileStoreError):
    """Raised when an upload exceeds the configured size limit."""


class MissingPostIdError(FileStoreError):
    """Raised when a commit does not name a usable post directory."""


class StoredFileNotFoundError(FileStoreError):
    """Raised when a requested artifact does not exist."""


@dataclass(frozen=True)
class StagedUpload:
    """Handle for an upload sitting in the staging area."""

    path: Path
    filename: str
    original_name: str
    content_type: str | None
    size: int


@dataclass(frozen=True)
class StoredFile:
    """A committed artifact resolved inside a post directory."""

    post_id: str
    filename: str
    path: Path
    content_type: str
    size: int

    def read_bytes(self) -> bytes:
        """Return the artifact contents, re-read from disk."""
        return self.path.read_bytes()


def safe_component(value: str | None) -> str:
    """Reduce a caller-supplied path segment to its base name.

    Both separators are honoured regardless of platform. Segments that
    collapse to nothing, `.` or `..` come back as an empty string.
    """
    if not value:
        return ""
    name = value.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1].strip()
    if name in {"", ".", ".."}:
        return ""
    return name


def content_type_for(filename: str) -> str:
    """Infer a response content type from a file extension."""
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), DEFAULT_CONTENT_TYPE)


def _sanitize_stem(stem: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("", stem).strip(" .")
    encoded = cleaned.encode("utf-8")
    if len(encoded) > _MAX_STEM_BYTES:
        cleaned = encoded[:_MAX_STEM_BYTES].decode("utf-8", errors="ignore").rstrip()
    return cleaned or "upload"


def fit_name(name: str) -> str:
    """Shorten `name` to the filesystem name limit, keeping its extension."""
    if len(name.encode("utf-8")) <= MAX_NAME_BYTES:
        return name
    suffix = Path(name).suffix
    budget = MAX_NAME_BYTES - len(suffix.encode("utf-8"))
    stem = Path(name).stem.encode("utf-8")[:budget].decode("utf-8", errors="ignore").rstrip()
    return f"{stem}{suffix}"


class FileStore:
    """Stage, commit, retrieve and delete post media under one root directory."""

    def __init__(
        self,
        root: Path,
        *,
        max_bytes: int = settings.max_upload_bytes,
        allowed_extensions: frozenset[str] = settings.allowed_extensions,
    ) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.allowed_extensions = allowed_extensions

    @property
    def staging_dir(self) -> Path:
        return self.root / STAGING_DIR_NAME

    def ensure_root(self) -> None:
        """Create the upload root and staging area if they are missing."""
        if not self.staging_dir.exists():
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created upload directory: %s", self.root)

    def _check_media_type(self, filename: str, content_type: str | None) -> str:
        extension = Path(filename).suffix.lower()
        if extension not in self.allowed_extensions:
            raise InvalidMediaTypeError("Only image and video files are allowed!")
        if content_type:
            major = content_type.split(";", 1)[0].strip().lower().split("/", 1)[0]
            if major not in {"image", "video"}:
                raise InvalidMediaTypeError("Only image and video files are allowed!")
        return extension

    def _post_dir(self, post_id: str | None) -> Path | None:
        key = safe_component(post_id)
        if not key or key == STAGING_DIR_NAME:
            return None
        candidate = self.root / key
        root = self.root.resolve()
        if not candidate.resolve().is_relative_to(root):
            return None
        return candidate

    def _artifact_path(self, post_id: str | None, filename: str | None) -> Path | None:
        post_dir = self._post_dir(post_id)
        name = safe_component(filename)
        if post_dir is None or not name:
            return None
        path = post_dir / name
        if not path.resolve().is_relative_to(post_dir.resolve()):
            return None
        return path

    def stage(
        self,
        source: bytes | BinaryIO,
        original_name: str,
        content_type: str | None = None,
    ) -> StagedUpload:
        """Write an upload into the staging area under a unique server name.

        Raises:
            InvalidMediaTypeError: Extension or declared type is not allowed.
                Nothing is written in that case.
            FileTooLargeError: The payload exceeds `max_bytes`; the partial
                staged file is removed.
        """
        display_name = safe_component(original_name) or "upload"
        extension = self._check_media_type(display_name, content_type)

        self.ensure_root()
        stem = _sanitize_stem(Path(display_name).stem)
        unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9):09d}"
        staged_name = f"{stem}-{unique_suffix}{extension}"
        staged_path = self.staging_dir / staged_name

        size = 0
        try:
            with staged_path.open("xb") as target:
                if isinstance(source, bytes | bytearray):
                    size = len(source)
                    if size > self.max_bytes:
                        raise FileTooLargeError(self._too_large_message())
                    target.write(source)
                else:
                    while chunk := source.read(CHUNK_SIZE):
                        size += len(chunk)
                        if size > self.max_bytes:
                            raise FileTooLargeError(self._too_large_message())
                        target.write(chunk)
        except BaseException:
            staged_path.unlink(missing_ok=True)
            raise

        logger.debug("Staged %s as %s (%d bytes)", display_name, staged_name, size)
        return StagedUpload(
            path=staged_path,
            filename=staged_name,
            original_name=display_name,
            content_type=content_type,
            size=size,
        )

    def _too_large_message(self) -> str:
        return f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB."

    def discard(self, staged: StagedUpload) -> None:
        """Remove a staged upload that will not be committed."""
        try:
            staged.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Error deleting temp file %s: %s", staged.path, exc)

    def commit(
        self,
        staged: StagedUpload,
        post_id: str | None,
        final_name: str | None = None,
    ) -> StoredFile:
        """Move a staged upload into its post directory.

        `final_name` is reduced to its base name, falls back to the staged
        name, and is shortened to `MAX_NAME_BYTES` keeping its extension.
        The staged file is deleted whenever the commit fails.

        Raises:
            MissingPostIdError: `post_id` is absent or unusable.
            InvalidMediaTypeError: `final_name` has a disallowed extension.
            FileStoreError: The rename itself failed.
        """
        post_dir = self._post_dir(post_id)
        if post_dir is None:
            self.discard(staged)
            raise MissingPostIdError("postId is required")

        name = fit_name(safe_component(final_name) or staged.filename)
        try:
            self._check_media_type(name, None)
        except InvalidMediaTypeError:
            self.discard(staged)
            raise

        destination = post_dir / name
        try:
            post_dir.mkdir(parents=True, exist_ok=True)
            if destination.exists():
                logger.warning("Replacing existing file %s", destination)
            os.replace(staged.path, destination)
        except OSError as exc:
            self.discard(staged)
            raise FileStoreError(f"Failed to store file: {exc}") from exc

        logger.info("File uploaded: %s to %s", name, destination)
        return StoredFile(
            post_id=post_dir.name,
            filename=name,
            path=destination,
            content_type=content_type_for(name),
            size=staged.size,
        )

    def retrieve(self, post_id: str, filename: str) -> StoredFile:
        """Resolve a committed artifact.

        Raises:
            StoredFileNotFoundError: The artifact does not exist.
        """
        path = self._artifact_path(post_id, filename)
        if path is None or not path.is_file():
            logger.info("File not found: %s/%s", post_id, filename)
            raise StoredFileNotFoundError("File not found")
        return StoredFile(
            post_id=path.parent.name,
            filename=path.name,
            path=path,
            content_type=content_type_for(path.name),
            size=path.stat().st_size,
        )

    def delete(self, post_id: str, filename: str) -> None:
        """Remove an artifact, then its post directory if it became empty.

        Raises:
            StoredFileNotFoundError: The artifact does not exist.
            OSError: The filesystem refused the removal.
        """
        path = self._artifact_path(post_id, filename)
        if path is None or not path.is_file():
            raise StoredFileNotFoundError("File not found")

        path.unlink()
        logger.info("File deleted: %s", path)

        post_dir = path.parent
        try:
            if not any(post_dir.iterdir()):
                post_dir.rmdir()
                logger.info("Removed empty directory: %s", post_dir)
        except OSError as exc:
            logger.debug("Kept directory %s: %s", post_dir, exc)

    def list_files(self, post_id: str) -> list[str]:
        """Return names of the artifacts currently stored for a post."""
        post_dir = self._post_dir(post_id)
        if post_dir is None or not post_dir.is_dir():
            return []
        return sorted(entry.name for entry in post_dir.iterdir() if entry.is_file())

    def purge_post(self, post_id: str) -> list[str]:
        """Remove every remaining artifact of a post along with its directory.

        Returns:
            Names of the files that were still present.
        """
        post_dir = self._post_dir(post_id)
        if post_dir is None or not post_dir.exists():
            return []
        leftovers = self.list_files(post_id)
        shutil.rmtree(post_dir)
        if leftovers:
            logger.warning("Purged %d leftover file(s) for post %s", len(leftovers), post_id)
        return leftovers


def get_file_store() -> FileStore:
    """Return a file store rooted at the configured upload directory."""
    return FileStore(settings.upload_dir)
