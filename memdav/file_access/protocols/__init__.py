# memdav/file_access/protocols/__init__.py
"""
Protocol engines serving a FileSystem over the network.
"""

from memdav.file_access.protocols.webdav_protocol import WebDAVHandler

__all__ = [
    "WebDAVHandler",
]
