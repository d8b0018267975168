# memdav/file_access/memfs_provider.py
"""
In-memory filesystem provider.

Files live in a tree of nodes held by the process; nothing touches the
disk and everything is lost on exit.
"""
import errno
import os
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import structlog

from memdav.file_access.base_fs import (
    File,
    FileInfo,
    FileSystem,
    clean_path,
    is_readable,
    is_writable,
)

logger = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _MemNode:
    """A file or directory in the tree."""

    __slots__ = ("name", "children", "data", "mode", "mod_time")

    def __init__(self, name: str, is_directory: bool, mode: int):
        self.name = name
        self.children: Optional[Dict[str, "_MemNode"]] = {} if is_directory else None
        self.data = bytearray()
        self.mode = mode
        self.mod_time = _now()

    @property
    def is_directory(self) -> bool:
        return self.children is not None

    def info(self) -> FileInfo:
        return FileInfo(
            name=self.name,
            size=0 if self.is_directory else len(self.data),
            is_directory=self.is_directory,
            modified_time=self.mod_time,
            mode=self.mode,
        )


class MemFS(FileSystem):
    """
    Memory-backed filesystem.

    A single lock guards the tree and file contents; no operation awaits
    while holding it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._root = _MemNode("/", True, 0o777)
        logger.info("memfs_initialized")

    def _find(self, path: str) -> Tuple[Optional[_MemNode], str, Optional[_MemNode]]:
        """Return (parent, name, node) for a cleaned path; node may be None."""
        if path == "/":
            return None, "", self._root
        parts = path.strip("/").split("/")
        parent = self._root
        for part in parts[:-1]:
            child = parent.children.get(part)
            if child is None:
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
            if not child.is_directory:
                raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
            parent = child
        name = parts[-1]
        return parent, name, parent.children.get(name)

    async def mkdir(self, path: str, perm: int = 0o777) -> None:
        path = clean_path(path)
        with self._lock:
            parent, name, node = self._find(path)
            if node is not None:
                raise FileExistsError(errno.EEXIST, "File exists", path)
            parent.children[name] = _MemNode(name, True, perm & 0o777)
            parent.mod_time = _now()

    async def open_file(self, path: str, flags: int = os.O_RDONLY, perm: int = 0o666) -> File:
        path = clean_path(path)
        with self._lock:
            parent, name, node = self._find(path)
            if node is None:
                if not flags & os.O_CREAT:
                    raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
                node = _MemNode(name, False, perm & 0o777)
                parent.children[name] = node
                parent.mod_time = _now()
            else:
                if flags & os.O_CREAT and flags & os.O_EXCL:
                    raise FileExistsError(errno.EEXIST, "File exists", path)
                if node.is_directory and is_writable(flags):
                    raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
                if flags & os.O_TRUNC and is_writable(flags):
                    del node.data[:]
                    node.mod_time = _now()
            entries = None
            if node.is_directory:
                # Listing reflects the directory as it was when opened
                entries = [child.info() for _, child in sorted(node.children.items())]
            return MemFile(self._lock, node, flags, entries)

    async def remove_all(self, path: str) -> None:
        path = clean_path(path)
        if path == "/":
            raise PermissionError(errno.EPERM, "Cannot remove the root directory", path)
        with self._lock:
            try:
                parent, name, node = self._find(path)
            except (FileNotFoundError, NotADirectoryError):
                return
            if node is None:
                return
            del parent.children[name]
            parent.mod_time = _now()

    async def rename(self, old_path: str, new_path: str) -> None:
        old_path = clean_path(old_path)
        new_path = clean_path(new_path)
        if old_path == "/" or new_path == "/":
            raise PermissionError(errno.EPERM, "Cannot rename the root directory", old_path)
        if new_path.startswith(old_path + "/"):
            raise PermissionError(errno.EINVAL, "Cannot move a directory inside itself", new_path)
        if old_path == new_path:
            return
        with self._lock:
            old_parent, old_name, node = self._find(old_path)
            if node is None:
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", old_path)
            new_parent, new_name, existing = self._find(new_path)
            if existing is not None and existing.is_directory and existing.children:
                raise FileExistsError(errno.ENOTEMPTY, "Directory not empty", new_path)
            del old_parent.children[old_name]
            node.name = new_name
            new_parent.children[new_name] = node
            old_parent.mod_time = new_parent.mod_time = _now()

    async def stat(self, path: str) -> FileInfo:
        path = clean_path(path)
        with self._lock:
            _, _, node = self._find(path)
            if node is None:
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
            return node.info()


class MemFile(File):
    """Handle on a memory node with its own position."""

    def __init__(self, lock: threading.Lock, node: _MemNode, flags: int,
                 entries: Optional[List[FileInfo]] = None):
        self._lock = lock
        self._node = node
        self._flags = flags
        self._entries = entries
        self._pos = 0
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed file")

    def _check_data(self, allowed: bool, action: str) -> None:
        self._check_open()
        if self._node.is_directory:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", self._node.name)
        if not allowed:
            raise PermissionError(errno.EBADF, f"File not open for {action}", self._node.name)

    async def read(self, size: int = -1) -> bytes:
        self._check_data(is_readable(self._flags), "reading")
        with self._lock:
            data = self._node.data
            end = len(data) if size is None or size < 0 else self._pos + size
            chunk = bytes(data[self._pos:end])
        self._pos += len(chunk)
        return chunk

    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_open()
        with self._lock:
            if whence == os.SEEK_SET:
                pos = offset
            elif whence == os.SEEK_CUR:
                pos = self._pos + offset
            elif whence == os.SEEK_END:
                pos = len(self._node.data) + offset
            else:
                raise ValueError(f"invalid whence ({whence})")
        if pos < 0:
            raise ValueError(f"negative seek position {pos}")
        self._pos = pos
        return pos

    async def write(self, data: bytes) -> int:
        self._check_data(is_writable(self._flags), "writing")
        with self._lock:
            buf = self._node.data
            if self._flags & os.O_APPEND:
                self._pos = len(buf)
            if self._pos > len(buf):
                buf.extend(bytes(self._pos - len(buf)))
            buf[self._pos:self._pos + len(data)] = data
            self._node.mod_time = _now()
        self._pos += len(data)
        return len(data)

    async def readdir(self, count: int = 0) -> List[FileInfo]:
        self._check_open()
        if self._entries is None:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", self._node.name)
        if count <= 0:
            batch = self._entries[self._pos:]
        else:
            batch = self._entries[self._pos:self._pos + count]
        self._pos += len(batch)
        return batch

    async def stat(self) -> FileInfo:
        self._check_open()
        with self._lock:
            return self._node.info()

    async def close(self) -> None:
        self._closed = True
