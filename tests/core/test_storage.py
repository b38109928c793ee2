"""
Tests for durable file storage and request-scoped staging.
"""

import asyncio
from io import BytesIO

import pytest
from starlette.datastructures import UploadFile

from backoffice.core.storage import FileTooLargeError, StagedFiles, StorageError, get_extension


def _upload(filename: str, content: bytes = b"%PDF-1.4 test") -> UploadFile:
    return UploadFile(file=BytesIO(content), filename=filename, size=len(content))


def test_get_extension():
    assert get_extension("Report.PDF") == "pdf"
    assert get_extension("archive.tar.gz") == "gz"
    assert get_extension("noext") == ""
    assert get_extension(None) == ""


class TestFileStorage:
    @pytest.mark.asyncio
    async def test_save_writes_under_root(self, storage):
        stored = await storage.save(_upload("birth.pdf"), "birthCertificate")

        assert stored.ref.startswith("applications/")
        assert stored.ref.endswith("-birthCertificate.pdf")
        assert storage.resolve(stored.ref).read_bytes() == b"%PDF-1.4 test"
        assert await storage.exists(stored.ref)

    @pytest.mark.asyncio
    async def test_save_over_limit_leaves_nothing(self, storage, stored_files):
        big = b"x" * (storage.max_bytes + 1)

        with pytest.raises(FileTooLargeError):
            await storage.save(_upload("photo.png", big), "photo")

        assert stored_files() == []

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, storage):
        stored = await storage.save(_upload("photo.png"), "photo")

        assert await storage.delete(stored.ref) is True
        assert await storage.delete(stored.ref) is False
        assert not await storage.exists(stored.ref)

    def test_resolve_rejects_escape(self, storage):
        with pytest.raises(StorageError):
            storage.resolve("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_exists_is_false_for_escaping_reference(self, storage):
        assert await storage.exists("../outside.pdf") is False

    def test_is_allowed(self, storage):
        assert storage.is_allowed("a.PDF")
        assert not storage.is_allowed("a.exe")
        assert not storage.is_allowed("noext")


class TestStagedFiles:
    @pytest.mark.asyncio
    async def test_release_keeps_files(self, storage, stored_files):
        async with StagedFiles(storage) as staged:
            await staged.stage(_upload("photo.png"), "photo")
            refs = staged.release()

        assert list(refs) == ["photo"]
        assert len(stored_files()) == 1

    @pytest.mark.asyncio
    async def test_exception_discards_files(self, storage, stored_files):
        with pytest.raises(RuntimeError):
            async with StagedFiles(storage) as staged:
                await staged.stage(_upload("photo.png"), "photo")
                await staged.stage(_upload("birth.pdf"), "birthCertificate")
                raise RuntimeError("insert failed")

        assert stored_files() == []

    @pytest.mark.asyncio
    async def test_leaving_without_release_discards(self, storage, stored_files):
        async with StagedFiles(storage) as staged:
            await staged.stage(_upload("photo.png"), "photo")

        assert stored_files() == []

    @pytest.mark.asyncio
    async def test_cancellation_discards_files(self, storage, stored_files):
        staged_one = asyncio.Event()

        async def request_handler():
            async with StagedFiles(storage) as staged:
                await staged.stage(_upload("photo.png"), "photo")
                staged_one.set()
                await asyncio.sleep(10)
                staged.release()

        task = asyncio.create_task(request_handler())
        await staged_one.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert stored_files() == []

    @pytest.mark.asyncio
    async def test_stage_after_release_is_an_error(self, storage):
        async with StagedFiles(storage) as staged:
            staged.release()
            with pytest.raises(RuntimeError):
                await staged.stage(_upload("photo.png"), "photo")
