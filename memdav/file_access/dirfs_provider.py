# memdav/file_access/dirfs_provider.py
"""
Local directory filesystem provider.

Serves a directory on disk (or any NAS mounted at a local path). Blocking
calls run in worker threads through aiofiles.
"""
import errno
import os
import shutil
import stat as stat_module
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
import structlog

from memdav.file_access.base_fs import (
    File,
    FileInfo,
    FileSystem,
    O_ACCMODE,
    clean_path,
)

logger = structlog.get_logger()

_os_open = aiofiles.os.wrap(os.open)
_os_close = aiofiles.os.wrap(os.close)
_os_fstat = aiofiles.os.wrap(os.fstat)
_os_lstat = aiofiles.os.wrap(os.lstat)
_rmtree = aiofiles.os.wrap(shutil.rmtree)


def _info(name: str, st: os.stat_result) -> FileInfo:
    is_directory = stat_module.S_ISDIR(st.st_mode)
    return FileInfo(
        name=name,
        size=0 if is_directory else st.st_size,
        is_directory=is_directory,
        modified_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        mode=stat_module.S_IMODE(st.st_mode),
    )


def _file_mode(flags: int) -> str:
    """Translate os.O_* flags into a mode for open() on a descriptor."""
    access = flags & O_ACCMODE
    if flags & os.O_APPEND:
        return "a+b" if access == os.O_RDWR else "ab"
    if access == os.O_WRONLY:
        return "wb"
    if access == os.O_RDWR:
        return "r+b"
    return "rb"


class DirFS(FileSystem):
    """
    Directory-backed filesystem.

    Every path is resolved inside ``base_path``; anything escaping it is
    refused.
    """

    def __init__(self, base_path: str):
        self.base_path = Path(base_path).resolve()
        if not self.base_path.is_dir():
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", str(self.base_path))
        logger.info("dirfs_initialized", base_path=str(self.base_path))

    def _resolve_path(self, path: str) -> Path:
        """Resolve a served path to a path within base_path."""
        path = clean_path(path)
        resolved = self.base_path.joinpath(path.lstrip("/"))

        # Security check: symlinks must not lead outside base_path
        try:
            resolved.resolve().relative_to(self.base_path)
        except ValueError:
            raise PermissionError(errno.EACCES, "Access denied: path is outside base_path", path)

        return resolved

    async def mkdir(self, path: str, perm: int = 0o777) -> None:
        await aiofiles.os.mkdir(self._resolve_path(path), perm)

    async def open_file(self, path: str, flags: int = os.O_RDONLY, perm: int = 0o666) -> File:
        resolved = self._resolve_path(path)
        fd = await _os_open(resolved, flags | getattr(os, "O_CLOEXEC", 0), perm)
        try:
            st = await _os_fstat(fd)
        except OSError:
            await _os_close(fd)
            raise
        if stat_module.S_ISDIR(st.st_mode):
            return DirHandle(resolved, fd)
        f = await aiofiles.open(fd, _file_mode(flags), closefd=True)
        return DiskFile(resolved.name, f)

    async def remove_all(self, path: str) -> None:
        resolved = self._resolve_path(path)
        if resolved == self.base_path:
            raise PermissionError(errno.EPERM, "Cannot remove the root directory", path)
        try:
            st = await _os_lstat(resolved)
        except FileNotFoundError:
            return
        if stat_module.S_ISDIR(st.st_mode):
            await _rmtree(resolved)
        else:
            await aiofiles.os.unlink(resolved)

    async def rename(self, old_path: str, new_path: str) -> None:
        old_resolved = self._resolve_path(old_path)
        new_resolved = self._resolve_path(new_path)
        if self.base_path in (old_resolved, new_resolved):
            raise PermissionError(errno.EPERM, "Cannot rename the root directory", old_path)
        await aiofiles.os.rename(old_resolved, new_resolved)

    async def stat(self, path: str) -> FileInfo:
        resolved = self._resolve_path(path)
        st = await aiofiles.os.stat(resolved)
        return _info(resolved.name, st)

    def __repr__(self) -> str:
        return f"<DirFS base_path={self.base_path}>"


class DiskFile(File):
    """Regular file on disk, wrapping an aiofiles handle."""

    def __init__(self, name: str, f):
        self._name = name
        self._f = f

    async def read(self, size: int = -1) -> bytes:
        return await self._f.read(size)

    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return await self._f.seek(offset, whence)

    async def write(self, data: bytes) -> int:
        return await self._f.write(data)

    async def readdir(self, count: int = 0) -> List[FileInfo]:
        raise NotADirectoryError(errno.ENOTDIR, "Not a directory", self._name)

    async def stat(self) -> FileInfo:
        st = await _os_fstat(self._f.fileno())
        return _info(self._name, st)

    async def close(self) -> None:
        await self._f.close()


class DirHandle(File):
    """Open directory on disk."""

    def __init__(self, path: Path, fd: int):
        self._path = path
        self._fd: Optional[int] = fd
        self._entries: Optional[List[FileInfo]] = None
        self._pos = 0

    async def read(self, size: int = -1) -> bytes:
        raise IsADirectoryError(errno.EISDIR, "Is a directory", str(self._path))

    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if offset != 0 or whence != os.SEEK_SET:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", str(self._path))
        self._pos = 0
        return 0

    async def write(self, data: bytes) -> int:
        raise IsADirectoryError(errno.EISDIR, "Is a directory", str(self._path))

    async def _load_entries(self) -> List[FileInfo]:
        entries = []
        for name in sorted(await aiofiles.os.listdir(self._path)):
            try:
                st = await aiofiles.os.stat(self._path / name)
            except FileNotFoundError:
                # Removed between listing and stat
                continue
            entries.append(_info(name, st))
        return entries

    async def readdir(self, count: int = 0) -> List[FileInfo]:
        if self._entries is None:
            self._entries = await self._load_entries()
        if count <= 0:
            batch = self._entries[self._pos:]
        else:
            batch = self._entries[self._pos:self._pos + count]
        self._pos += len(batch)
        return batch

    async def stat(self) -> FileInfo:
        return _info(self._path.name, await _os_fstat(self._fd))

    async def close(self) -> None:
        if self._fd is not None:
            fd, self._fd = self._fd, None
            await _os_close(fd)
