"""
File Storage

Local-disk durable storage for uploaded documents.

Files are written under ``settings.upload_dir`` and addressed by a relative
reference (``applications/<hex>-<kind>.<ext>``) which is what gets stored on
the owning record. Blocking file I/O runs in a worker thread so the event
loop is never stalled by a large upload.

``StagedFiles`` scopes the files written during one request: anything staged
is deleted again on every exit path except an explicit ``release()``, which
hands ownership to the committed record.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from uuid import uuid4

from fastapi import Request, UploadFile

from backoffice.core.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class StorageError(Exception):
    """Raised when a file cannot be written, read or removed."""


class FileTooLargeError(StorageError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(f"File exceeds the maximum size of {max_bytes // (1024 * 1024)} MB")


@dataclass(frozen=True)
class StoredFile:
    """A file that now lives in durable storage."""

    ref: str
    kind: str
    original_name: str | None
    size: int


def get_extension(filename: str | None) -> str:
    """Lower-cased extension without the dot ('' when there is none)."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


class FileStorage:
    """Durable file storage rooted at a directory."""

    def __init__(
        self,
        root: Path,
        max_bytes: int,
        allowed_extensions: set[str],
    ):
        self.root = root.resolve()
        self.max_bytes = max_bytes
        self.allowed_extensions = allowed_extensions

    @classmethod
    def from_settings(cls) -> "FileStorage":
        return cls(
            root=settings.upload_path,
            max_bytes=settings.upload_max_bytes,
            allowed_extensions=settings.allowed_extensions,
        )

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def is_allowed(self, filename: str | None) -> bool:
        return get_extension(filename) in self.allowed_extensions

    def resolve(self, ref: str) -> Path:
        """
        Map a stored reference to an absolute path inside the storage root.

        Raises:
            StorageError: If the reference points outside the root
        """
        path = (self.root / PurePosixPath(ref)).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError(f"Invalid file reference: {ref}")
        return path

    def _write(self, source: BinaryIO, destination: Path) -> int:
        destination.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        try:
            source.seek(0)
            with destination.open("xb") as target:
                while chunk := source.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise FileTooLargeError(self.max_bytes)
                    target.write(chunk)
        except FileTooLargeError:
            destination.unlink(missing_ok=True)
            raise
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise StorageError(f"Could not write {destination.name}: {e}") from e
        return written

    async def save(self, upload: UploadFile, kind: str, folder: str = "applications") -> StoredFile:
        """
        Move an upload into durable storage.

        Args:
            upload: The multipart file part
            kind: Logical document kind, used in the stored file name
            folder: Sub-directory under the storage root

        Returns:
            StoredFile describing the new file

        Raises:
            FileTooLargeError: If the upload is over the size limit
            StorageError: If the file could not be written
        """
        extension = get_extension(upload.filename)
        name = f"{uuid4().hex}-{kind}" + (f".{extension}" if extension else "")
        ref = f"{folder}/{name}"
        destination = self.resolve(ref)

        size = await asyncio.to_thread(self._write, upload.file, destination)
        logger.debug(f"Stored {kind} upload as {ref} ({size} bytes)")

        return StoredFile(ref=ref, kind=kind, original_name=upload.filename, size=size)

    async def delete(self, ref: str) -> bool:
        """Delete a stored file. Returns False if it was already gone."""
        path = self.resolve(ref)

        def _unlink() -> bool:
            try:
                path.unlink()
                return True
            except FileNotFoundError:
                return False
            except OSError as e:
                raise StorageError(f"Could not delete {ref}: {e}") from e

        return await asyncio.to_thread(_unlink)

    async def exists(self, ref: str) -> bool:
        try:
            path = self.resolve(ref)
        except StorageError:
            return False
        return await asyncio.to_thread(path.is_file)


class StagedFiles:
    """
    Files staged to durable storage on behalf of a single request.

    Usage:
        async with StagedFiles(storage) as staged:
            await staged.stage(upload, "photo")
            ...persist the record...
            documents = staged.release()

    Leaving the block without calling ``release()`` (an exception, or the
    request task being cancelled) deletes every staged file.
    """

    def __init__(self, storage: FileStorage):
        self._storage = storage
        self._files: dict[str, StoredFile] = {}
        self._released = False

    async def __aenter__(self) -> "StagedFiles":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if not self._released:
            await self.discard()
        return False

    @property
    def refs(self) -> dict[str, str]:
        return {kind: stored.ref for kind, stored in self._files.items()}

    async def stage(self, upload: UploadFile, kind: str) -> StoredFile:
        """Save an upload and take ownership of the stored file."""
        if self._released:
            raise RuntimeError("Cannot stage files after release()")

        task = asyncio.ensure_future(self._storage.save(upload, kind))
        try:
            stored = await asyncio.shield(task)
        except asyncio.CancelledError:
            # The copy runs in a worker thread and finishes regardless; wait for
            # it so the file it produces is tracked and removed by discard().
            with contextlib.suppress(Exception):
                self._files[kind] = await task
            raise

        self._files[kind] = stored
        return stored

    def release(self) -> dict[str, str]:
        """Hand the staged files over to the committed record."""
        self._released = True
        return self.refs

    async def discard(self) -> None:
        """Delete every staged file. Failures are logged, never raised."""
        for kind, stored in list(self._files.items()):
            try:
                await self._storage.delete(stored.ref)
                logger.info(f"Removed staged {kind} file {stored.ref}")
            except StorageError as e:
                logger.error(f"Failed to remove staged file {stored.ref}: {e}")
        self._files.clear()


def get_storage(request: Request) -> FileStorage:
    """FastAPI dependency returning the storage created during startup."""
    return request.app.state.storage
