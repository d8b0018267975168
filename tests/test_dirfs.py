# tests/test_dirfs.py
"""
Tests for the directory-backed filesystem and backend selection.
"""
import os
import stat

import pytest

from memdav.errors import ConfigurationError
from memdav.file_access.dirfs_provider import DirFS
from memdav.file_access.memfs_provider import MemFS
from memdav.file_access.nosave import NoSaveFS
from memdav.file_access.registry import (
    PROVIDER_REGISTRY,
    build_filesystem,
    get_provider_by_name,
)

from conftest import make_settings


class TestDirFS:
    """Tests for DirFS."""

    @pytest.fixture
    def fs(self, tmp_path):
        return DirFS(str(tmp_path))

    @pytest.mark.asyncio
    async def test_write_and_read(self, fs, tmp_path):
        async with await fs.open_file("/note.txt", os.O_RDWR | os.O_CREAT | os.O_TRUNC) as f:
            assert await f.write(b"on disk") == 7

        assert (tmp_path / "note.txt").read_bytes() == b"on disk"
        async with await fs.open_file("/note.txt") as f:
            assert await f.read() == b"on disk"
        assert (await fs.stat("/note.txt")).size == 7

    @pytest.mark.asyncio
    async def test_directory_listing(self, fs, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "b.txt").write_bytes(b"b")
        (tmp_path / "a.txt").write_bytes(b"aa")

        async with await fs.open_file("/") as d:
            infos = await d.readdir()
        assert [(i.name, i.is_directory) for i in infos] == [
            ("a.txt", False), ("b.txt", False), ("sub", True)]

    @pytest.mark.asyncio
    async def test_directory_handle_has_no_data(self, fs):
        async with await fs.open_file("/") as d:
            with pytest.raises(IsADirectoryError):
                await d.read()

    @pytest.mark.asyncio
    async def test_path_escape_refused(self, fs, tmp_path):
        outside = tmp_path.parent / "outside-memdav"
        outside.mkdir(exist_ok=True)
        (tmp_path / "link").symlink_to(outside)
        with pytest.raises(PermissionError):
            await fs.stat("/link")

    @pytest.mark.asyncio
    async def test_dot_dot_stays_inside(self, fs, tmp_path):
        (tmp_path / "f").write_bytes(b"")
        info = await fs.stat("/../../f")
        assert info.name == "f"

    @pytest.mark.asyncio
    async def test_remove_all_and_rename(self, fs, tmp_path):
        await fs.mkdir("/d")
        (tmp_path / "d" / "f").write_bytes(b"x")
        await fs.rename("/d", "/e")
        assert (tmp_path / "e" / "f").exists()
        await fs.remove_all("/e")
        assert not (tmp_path / "e").exists()
        await fs.remove_all("/e")

    @pytest.mark.asyncio
    async def test_remove_root_refused(self, fs):
        with pytest.raises(PermissionError):
            await fs.remove_all("/")


class TestRegistry:
    """Tests for backend selection."""

    def test_registry_is_read_only(self):
        assert set(PROVIDER_REGISTRY) == {"memory", "dir"}
        with pytest.raises(TypeError):
            PROVIDER_REGISTRY["bogus"] = dict

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            get_provider_by_name("ftp")

    def test_memory_by_default(self):
        assert isinstance(build_filesystem(make_settings()), MemFS)

    def test_directory_created_private(self, tmp_path):
        target = tmp_path / "new" / "store"
        fs = build_filesystem(make_settings(DIR=str(target)))
        assert isinstance(fs, DirFS)
        assert target.is_dir()
        assert stat.S_IMODE(target.stat().st_mode) & 0o077 == 0

    def test_directory_creation_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_bytes(b"")
        with pytest.raises(ConfigurationError):
            build_filesystem(make_settings(DIR=str(blocker / "store")))

    def test_no_save_wraps_backend(self, tmp_path):
        assert isinstance(build_filesystem(make_settings(NO_SAVE=True)), NoSaveFS)
        assert isinstance(build_filesystem(make_settings(NO_SAVE=True, DIR=str(tmp_path))), NoSaveFS)
