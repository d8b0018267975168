# memdav/file_access/nosave.py
"""
Write-suppressing filesystem decorator.

Wraps any FileSystem so that writes to open files store zeros of the same
length instead of the payload. Clients see normal sizes and byte counts,
but the content they sent is never kept.
"""
import os
from typing import List

from memdav.file_access.base_fs import File, FileInfo, FileSystem


class NoSaveFS(FileSystem):
    """FileSystem whose open files only ever write zeros."""

    def __init__(self, fs: FileSystem):
        self._fs = fs

    async def mkdir(self, path: str, perm: int = 0o777) -> None:
        return await self._fs.mkdir(path, perm)

    async def open_file(self, path: str, flags: int = os.O_RDONLY, perm: int = 0o666) -> File:
        f = await self._fs.open_file(path, flags, perm)
        return NoSaveFile(f)

    async def remove_all(self, path: str) -> None:
        return await self._fs.remove_all(path)

    async def rename(self, old_path: str, new_path: str) -> None:
        return await self._fs.rename(old_path, new_path)

    async def stat(self, path: str) -> FileInfo:
        return await self._fs.stat(path)

    def __repr__(self) -> str:
        return f"<NoSaveFS wrapping {self._fs!r}>"


class NoSaveFile(File):
    """File handle that replaces every write payload with zeros."""

    def __init__(self, f: File):
        self._f = f

    async def read(self, size: int = -1) -> bytes:
        return await self._f.read(size)

    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return await self._f.seek(offset, whence)

    async def write(self, data: bytes) -> int:
        return await self._f.write(bytes(len(data)))

    async def readdir(self, count: int = 0) -> List[FileInfo]:
        return await self._f.readdir(count)

    async def stat(self) -> FileInfo:
        return await self._f.stat()

    async def close(self) -> None:
        return await self._f.close()
