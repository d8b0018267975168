# memdav/file_access/registry.py
"""
Provider registry for the served filesystem.

Picks the storage backend from configuration and applies the
write-suppressing decorator when requested.
"""
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from memdav.config import Settings
from memdav.errors import ConfigurationError
from memdav.file_access.base_fs import FileSystem
from memdav.file_access.dirfs_provider import DirFS
from memdav.file_access.memfs_provider import MemFS
from memdav.file_access.nosave import NoSaveFS
from memdav.monitoring.logger import log


# Available providers, fixed at import time
PROVIDER_REGISTRY: Mapping[str, type] = MappingProxyType({
    "memory": MemFS,
    "dir": DirFS,
})


def get_provider_by_name(provider_name: str, **config: Any) -> FileSystem:
    """
    Instantiate a filesystem provider by name.

    Args:
        provider_name: Provider identifier (e.g., "memory", "dir")
        **config: Provider constructor arguments

    Returns:
        Initialized FileSystem instance

    Raises:
        ConfigurationError: If the provider is unknown or fails to initialize
    """
    provider_name = provider_name.lower().strip()

    provider_class = PROVIDER_REGISTRY.get(provider_name)

    if not provider_class:
        raise ConfigurationError(
            f"Unknown filesystem provider: '{provider_name}'. "
            f"Available providers: {list(PROVIDER_REGISTRY.keys())}"
        )

    try:
        return provider_class(**config)
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to initialize {provider_name} provider: {exc}"
        ) from exc

def build_filesystem(settings: Settings) -> FileSystem:
    """
    Build the filesystem served to clients.

    Uses a directory on disk when ``settings.DIR`` is set (creating it if
    needed), memory otherwise. With ``settings.NO_SAVE`` the store is
    wrapped so writes keep only zeros.

    Raises:
        ConfigurationError: If the directory can't be created or the
            provider fails to initialize
    """
    if settings.DIR:
        try:
            Path(settings.DIR).mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(f"Unable to make directory {settings.DIR}: {exc}") from exc
        filesystem = get_provider_by_name("dir", base_path=settings.DIR)
        log("INFO", f"Serving files from {settings.DIR}", component="registry")
    else:
        filesystem = get_provider_by_name("memory")
        log("INFO", "Serving files from memory", component="registry")

    if settings.NO_SAVE:
        filesystem = NoSaveFS(filesystem)
        log("INFO", "Writes will be replaced with zeros", component="registry")

    return filesystem
