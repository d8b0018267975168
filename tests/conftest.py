# tests/conftest.py
import base64
import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from memdav.config import Settings
from memdav.file_access.memfs_provider import MemFS
from memdav.main import create_app


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MEMDAV_* variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("MEMDAV_"):
            monkeypatch.delenv(name)


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def basic_auth(username: str, password: str) -> dict:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def memfs():
    return MemFS()


@pytest_asyncio.fixture
async def make_client():
    """Factory for clients talking to an app built from settings overrides."""
    clients = []

    async def factory(filesystem=None, **overrides):
        app = create_app(make_settings(**overrides), filesystem if filesystem is not None else MemFS())
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def client(make_client):
    return await make_client()
