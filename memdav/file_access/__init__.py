"""
File access layer served over WebDAV.

- base_fs: the FileSystem capability and open File handles
- memfs_provider / dirfs_provider: memory and directory backends
- nosave: decorator storing zeros instead of written data
- registry: backend selection from settings
- protocols.webdav_protocol: WsgiDAV provider and ASGI handler
"""

from memdav.file_access.base_fs import File, FileInfo, FileSystem
from memdav.file_access.registry import build_filesystem

__all__ = [
    "File",
    "FileInfo",
    "FileSystem",
    "build_filesystem",
]
