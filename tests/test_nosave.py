# tests/test_nosave.py
"""
Tests for the write-suppressing filesystem decorator.
"""
import os

import pytest

from memdav.file_access.memfs_provider import MemFS
from memdav.file_access.nosave import NoSaveFS


class TestNoSaveFS:
    """Tests for NoSaveFS."""

    @pytest.fixture
    def inner(self):
        return MemFS()

    @pytest.fixture
    def fs(self, inner):
        return NoSaveFS(inner)

    @pytest.mark.asyncio
    async def test_write_reports_full_length(self, fs):
        f = await fs.open_file("/a.txt", os.O_RDWR | os.O_CREAT)
        assert await f.write(b"hello") == 5
        await f.close()

    @pytest.mark.asyncio
    async def test_written_bytes_are_zeros(self, fs, inner):
        async with await fs.open_file("/a.txt", os.O_RDWR | os.O_CREAT) as f:
            await f.write(b"hello")
            await f.write(b"world!")

        async with await inner.open_file("/a.txt") as f:
            assert await f.read() == bytes(11)
        assert (await fs.stat("/a.txt")).size == 11

    @pytest.mark.asyncio
    async def test_empty_write(self, fs):
        async with await fs.open_file("/empty", os.O_RDWR | os.O_CREAT) as f:
            assert await f.write(b"") == 0
        assert (await fs.stat("/empty")).size == 0

    @pytest.mark.asyncio
    async def test_reads_pass_through(self, fs, inner):
        async with await inner.open_file("/data", os.O_RDWR | os.O_CREAT) as f:
            await f.write(b"payload")

        async with await fs.open_file("/data") as f:
            assert await f.read(3) == b"pay"
            assert await f.seek(0, os.SEEK_END) == 7

    @pytest.mark.asyncio
    async def test_namespace_operations_delegate(self, fs, inner):
        await fs.mkdir("/dir")
        async with await fs.open_file("/dir/file", os.O_RDWR | os.O_CREAT) as f:
            await f.write(b"x")
        await fs.rename("/dir/file", "/dir/moved")

        assert (await inner.stat("/dir")).is_directory
        assert (await inner.stat("/dir/moved")).size == 1

        async with await fs.open_file("/dir") as d:
            names = [info.name for info in await d.readdir()]
        assert names == ["moved"]

        await fs.remove_all("/dir")
        with pytest.raises(FileNotFoundError):
            await inner.stat("/dir")


    @pytest.mark.asyncio
    async def test_repeated_write_is_idempotent(self, fs, inner):
        for _ in range(2):
            async with await fs.open_file("/a.txt", os.O_RDWR | os.O_CREAT | os.O_TRUNC) as f:
                assert await f.write(b"hello") == 5
            async with await inner.open_file("/a.txt") as f:
                assert await f.read() == bytes(5)
            assert (await fs.stat("/a.txt")).size == 5

    @pytest.mark.asyncio
    async def test_open_failure_is_not_wrapped(self, fs):
        with pytest.raises(FileNotFoundError):
            await fs.open_file("/missing/x")

    @pytest.mark.asyncio
    async def test_namespace_errors_propagate(self, fs):
        await fs.mkdir("/dir")
        with pytest.raises(FileExistsError):
            await fs.mkdir("/dir")
        with pytest.raises(FileNotFoundError):
            await fs.stat("/nowhere")
        with pytest.raises(FileNotFoundError):
            await fs.rename("/nowhere", "/elsewhere")
        with pytest.raises(PermissionError):
            await fs.remove_all("/")
