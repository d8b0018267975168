# memdav/errors.py
"""
Exception hierarchy for memdav.

Filesystem backends raise builtin OSError subclasses (FileNotFoundError,
FileExistsError, ...); the classes here cover startup and listener failures.
"""


class MemDAVError(Exception):
    """Base class for memdav errors."""


class ConfigurationError(MemDAVError):
    """Invalid startup configuration. Fatal before serving begins."""


class ListenerStopped(MemDAVError):
    """A listener stopped serving. Always treated as a failure."""

