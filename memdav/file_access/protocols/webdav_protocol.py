# memdav/file_access/protocols/webdav_protocol.py
"""
WebDAV access to a FileSystem through WsgiDAV.

WsgiDAV implements the protocol, the lock table and dead properties. This
module exposes a FileSystem as a WsgiDAV DAVProvider and serves the WsgiDAV
application over ASGI with a2wsgi.

WsgiDAV runs in a2wsgi worker threads while FileSystem operations are
coroutines; each provider call is submitted to the event loop serving the
request and waited on from the worker thread.
"""
import asyncio
import contextvars
import os
from typing import List

import structlog
from a2wsgi import WSGIMiddleware
from starlette.types import Receive, Scope, Send
from wsgidav import util
from wsgidav.dav_error import (
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_METHOD_NOT_ALLOWED,
    HTTP_NOT_FOUND,
    DAVError,
)
from wsgidav.dav_provider import DAVCollection, DAVNonCollection, DAVProvider
from wsgidav.error_printer import ErrorPrinter
from wsgidav.http_authenticator import HTTPAuthenticator
from wsgidav.request_resolver import RequestResolver
from wsgidav.wsgidav_app import WsgiDAVApp

from memdav.file_access.base_fs import File, FileInfo, FileSystem, clean_path

logger = structlog.get_logger()

# Chunk size used when copying file contents
COPY_CHUNK_SIZE = 64 * 1024

# Loop serving the current request; a2wsgi copies the context into its workers
_request_loop: contextvars.ContextVar[asyncio.AbstractEventLoop] = contextvars.ContextVar("request_loop")

_OS_ERROR_STATUS = (
    (FileNotFoundError, HTTP_NOT_FOUND),
    (FileExistsError, HTTP_METHOD_NOT_ALLOWED),
    (IsADirectoryError, HTTP_METHOD_NOT_ALLOWED),
    (NotADirectoryError, HTTP_CONFLICT),
    (PermissionError, HTTP_FORBIDDEN),
)


def _run(coro):
    """
    Run a FileSystem coroutine from a WsgiDAV worker thread.

    Raises:
        DAVError: For storage errors with a matching HTTP status
    """
    future = asyncio.run_coroutine_threadsafe(coro, _request_loop.get())
    try:
        return future.result()
    except OSError as exc:
        for error_type, status in _OS_ERROR_STATUS:
            if isinstance(exc, error_type):
                logger.info("webdav_storage_error", error=str(exc), status=status)
                raise DAVError(status, context_info=str(exc), src_exception=exc) from exc
        raise


class BridgedFile:
    """Blocking file object over an async File, as WsgiDAV expects."""

    def __init__(self, f: File):
        self._f = f

    def read(self, size: int = -1) -> bytes:
        return _run(self._f.read(size))

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return _run(self._f.seek(offset, whence))

    def write(self, data: bytes) -> int:
        return _run(self._f.write(data))

    def close(self) -> None:
        _run(self._f.close())


class _ResourceMixin:
    """Live properties and namespace operations shared by files and collections."""

    info: FileInfo

    @property
    def filesystem(self) -> FileSystem:
        return self.provider.filesystem

    def get_creation_date(self):
        return self.info.modified_time.timestamp()

    def get_last_modified(self):
        return self.info.modified_time.timestamp()

    def support_recursive_delete(self):
        return True

    def delete(self):
        _run(self.filesystem.remove_all(self.path))
        self.remove_all_properties(recursive=True)
        self.remove_all_locks(recursive=True)

    def support_recursive_move(self, dest_path):
        return True

    def move_recursive(self, dest_path):
        dest_path = clean_path(dest_path)
        _run(self.filesystem.rename(self.path, dest_path))
        self.remove_all_locks(recursive=True)
        if self.provider.prop_manager:
            dest = self.provider.get_resource_inst(dest_path, self.environ)
            self.provider.prop_manager.move_properties(
                self.get_ref_url(), dest.get_ref_url(), with_children=True, environ=self.environ)

    def _copy_dead_properties(self, dest_path: str, is_move: bool) -> None:
        prop_manager = self.provider.prop_manager
        if not prop_manager:
            return
        dest = self.provider.get_resource_inst(dest_path, self.environ)
        if is_move:
            prop_manager.move_properties(
                self.get_ref_url(), dest.get_ref_url(), with_children=False, environ=self.environ)
        else:
            prop_manager.copy_properties(self.get_ref_url(), dest.get_ref_url(), self.environ)


class FileSystemResource(_ResourceMixin, DAVNonCollection):
    """A file in the served FileSystem."""

    def __init__(self, path: str, environ: dict, info: FileInfo):
        super().__init__(path, environ)
        self.info = info

    def get_content_length(self):
        return self.info.size

    def get_content_type(self):
        return util.guess_mime_type(self.path)

    def get_etag(self):
        return "%x%x" % (int(self.info.modified_time.timestamp() * 1e9), self.info.size)

    def support_etag(self):
        return True

    def support_ranges(self):
        return True

    def get_content(self):
        return BridgedFile(_run(self.filesystem.open_file(self.path, os.O_RDONLY)))

    def begin_write(self, *, content_type=None):
        flags = os.O_RDWR | os.O_CREAT | os.O_TRUNC
        return BridgedFile(_run(self.filesystem.open_file(self.path, flags, 0o666)))

    def end_write(self, *, with_errors):
        if with_errors:
            logger.warning("webdav_write_failed", path=self.path)
        # Size and etag reported after PUT come from the new content
        self.info = _run(self.filesystem.stat(self.path))

    def copy_move_single(self, dest_path, *, is_move):
        dest_path = clean_path(dest_path)
        _run(self._copy_file(dest_path))
        self._copy_dead_properties(dest_path, is_move)

    async def _copy_file(self, dest_path: str) -> None:
        flags = os.O_RDWR | os.O_CREAT | os.O_TRUNC
        async with await self.filesystem.open_file(self.path, os.O_RDONLY) as source:
            async with await self.filesystem.open_file(dest_path, flags, self.info.mode) as target:
                while True:
                    chunk = await source.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    await target.write(chunk)


class FileSystemCollection(_ResourceMixin, DAVCollection):
    """A directory in the served FileSystem."""

    def __init__(self, path: str, environ: dict, info: FileInfo):
        super().__init__(path, environ)
        self.info = info

    def get_etag(self):
        return None

    def support_etag(self):
        return False

    def _entries(self) -> List[FileInfo]:
        return _run(self._readdir())

    async def _readdir(self) -> List[FileInfo]:
        async with await self.filesystem.open_file(self.path, os.O_RDONLY) as directory:
            return await directory.readdir()

    def get_member_names(self):
        return [entry.name for entry in self._entries()]

    def get_member(self, name):
        return self.provider.get_resource_inst(util.join_uri(self.path, name), self.environ)

    def get_member_list(self):
        return [self.provider.resource_for(util.join_uri(self.path, entry.name), self.environ, entry)
                for entry in self._entries()]

    def create_empty_resource(self, name):
        path = util.join_uri(self.path, name)
        f = _run(self.filesystem.open_file(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666))
        _run(f.close())
        return self.provider.get_resource_inst(path, self.environ)

    def create_collection(self, name):
        path = util.join_uri(self.path, name)
        _run(self.filesystem.mkdir(path, 0o777))
        return self.provider.get_resource_inst(path, self.environ)

    def copy_move_single(self, dest_path, *, is_move):
        dest_path = clean_path(dest_path)
        try:
            _run(self.filesystem.stat(dest_path))
        except DAVError as exc:
            if exc.value != HTTP_NOT_FOUND:
                raise
            _run(self.filesystem.mkdir(dest_path, self.info.mode))
        self._copy_dead_properties(dest_path, is_move)


class FileSystemProvider(DAVProvider):
    """
    WsgiDAV provider serving a FileSystem.

    Args:
        filesystem: Store the resources live in
    """

    def __init__(self, filesystem: FileSystem):
        super().__init__()
        self.filesystem = filesystem

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.filesystem!r})"

    def resource_for(self, path: str, environ: dict, info: FileInfo):
        if info.is_directory:
            return FileSystemCollection(path, environ, info)
        return FileSystemResource(path, environ, info)

    def get_resource_inst(self, path, environ):
        path = clean_path(path)
        try:
            info = _run(self.filesystem.stat(path))
        except DAVError as exc:
            if exc.value in (HTTP_NOT_FOUND, HTTP_CONFLICT):
                return None
            raise
        return self.resource_for(path, environ, info)


def build_wsgidav_config(provider: FileSystemProvider) -> dict:
    """
    WsgiDAV configuration for memdav.

    Authentication and method restrictions are applied before a request
    reaches WsgiDAV, so its authenticator lets every request through.
    """
    return {
        "provider_mapping": {"/": provider},
        "middleware_stack": [ErrorPrinter, HTTPAuthenticator, RequestResolver],
        "simple_dc": {"user_mapping": {"*": True}},
        # In-memory dead properties and lock table
        "property_manager": True,
        "lock_storage": True,
        "verbose": 2,
        "http_authenticator": {
            "domain_controller": None,
            "accept_basic": True,
            "accept_digest": False,
            "default_to_digest": False,
        },
        "dir_browser": {"enable": False},
        "logging": {"enable": False},
    }


class WebDAVHandler:
    """
    ASGI WebDAV handler.

    Args:
        filesystem: Storage the requests operate on
    """

    def __init__(self, filesystem: FileSystem):
        self.filesystem = filesystem
        self.provider = FileSystemProvider(filesystem)
        self.dav_app = WsgiDAVApp(build_wsgidav_config(self.provider))
        self.wsgi = WSGIMiddleware(self.dav_app)
        logger.info("webdav_handler_initialized", provider=repr(self.provider))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        _request_loop.set(asyncio.get_running_loop())
        await self.wsgi(scope, receive, send)
