# memdav/file_access/base_fs.py
"""
Base filesystem interface served over WebDAV.

This interface defines the capability the WebDAV engine operates over.
Backends (memory, directory) implement it, and decorators such as the
write-suppressing store wrap it.

Paths are slash-separated and absolute ("/", "/docs/a.txt"). Flags are the
``os.O_*`` constants and permissions are ``os.chmod`` style integers.
"""
import os
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List


# Access mode bits of open flags
O_ACCMODE = os.O_RDONLY | os.O_WRONLY | os.O_RDWR


@dataclass
class FileInfo:
    """Information about a file or directory."""
    name: str
    size: int
    is_directory: bool
    modified_time: datetime
    mode: int = 0o644


def clean_path(path: str) -> str:
    """
    Normalize a request path to absolute POSIX form.

    Dot segments are resolved without ever climbing above "/", so the
    result is always inside the served tree.
    """
    path = posixpath.normpath("/" + (path or "").lstrip("/"))
    # normpath keeps a leading "//"
    return "/" + path.lstrip("/")


def is_writable(flags: int) -> bool:
    return (flags & O_ACCMODE) in (os.O_WRONLY, os.O_RDWR)


def is_readable(flags: int) -> bool:
    return (flags & O_ACCMODE) in (os.O_RDONLY, os.O_RDWR)


class File(ABC):
    """
    An open file or directory handle.

    Handles are owned by the request that opened them and must be closed
    on every exit path.
    """

    @abstractmethod
    async def read(self, size: int = -1) -> bytes:
        """
        Read up to ``size`` bytes from the current position.

        Returns:
            Bytes read; empty at end of file

        Raises:
            IsADirectoryError: If the handle is a directory
            PermissionError: If the handle was not opened for reading
        """
        pass

    @abstractmethod
    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the position and return the new absolute offset."""
        pass

    @abstractmethod
    async def write(self, data: bytes) -> int:
        """
        Write ``data`` at the current position.

        Returns:
            Number of bytes written

        Raises:
            IsADirectoryError: If the handle is a directory
            PermissionError: If the handle was not opened for writing
        """
        pass

    @abstractmethod
    async def readdir(self, count: int = 0) -> List[FileInfo]:
        """
        List directory entries.

        Args:
            count: Maximum number of entries to return; 0 or less returns
                all remaining entries

        Raises:
            NotADirectoryError: If the handle is a regular file
        """
        pass

    @abstractmethod
    async def stat(self) -> FileInfo:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


class FileSystem(ABC):
    """
    Abstract filesystem capability.

    All methods are async; backends doing blocking I/O delegate it to a
    worker thread. Errors are builtin OSError subclasses.
    """

    @abstractmethod
    async def mkdir(self, path: str, perm: int = 0o777) -> None:
        """
        Create a single directory.

        Raises:
            FileExistsError: If the path already exists
            FileNotFoundError: If the parent doesn't exist
        """
        pass

    @abstractmethod
    async def open_file(self, path: str, flags: int = os.O_RDONLY, perm: int = 0o666) -> File:
        """
        Open a file or directory.

        Args:
            path: Absolute path
            flags: ``os.O_*`` flags (O_CREAT, O_EXCL, O_TRUNC, O_APPEND and
                an access mode)
            perm: Permission bits for newly created files

        Returns:
            An open File handle

        Raises:
            FileNotFoundError: If the path (or its parent, with O_CREAT)
                doesn't exist
            FileExistsError: If O_CREAT|O_EXCL and the path exists
            IsADirectoryError: If a directory is opened for writing
        """
        pass

    @abstractmethod
    async def remove_all(self, path: str) -> None:
        """
        Remove a path and everything below it.

        Removing a path that doesn't exist is not an error.

        Raises:
            PermissionError: If the path is the root
        """
        pass

    @abstractmethod
    async def rename(self, old_path: str, new_path: str) -> None:
        """
        Rename a file or directory, replacing a file or empty directory at
        the destination.

        Raises:
            FileNotFoundError: If the source or the destination parent
                doesn't exist
            PermissionError: If either path is the root, or the destination
                is inside the source
        """
        pass

    @abstractmethod
    async def stat(self, path: str) -> FileInfo:
        """
        Raises:
            FileNotFoundError: If the path doesn't exist
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
