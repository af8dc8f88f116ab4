"""
Shared fixtures: an app wired to a throwaway SQLite database and a fixed
signing secret, plus an httpx client speaking ASGI to it.
"""

from typing import Any, Dict, Optional

import httpx
import pytest
import pytest_asyncio

from auth import password as password_module
from config.settings import Settings
from database.session import init_models
from main import create_app

TEST_SECRET = "gamergrid-test-secret-0123456789abcdef"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Lowest bcrypt cost so the suite does not spend seconds hashing."""
    monkeypatch.setattr(password_module, "_BCRYPT_ROUNDS", 4)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'gamergrid.db'}",
        upload_dir=str(tmp_path / "uploads"),
        rawg_api_key="test-rawg-key",
    )


@pytest_asyncio.fixture
async def app(settings):
    application = create_app(settings)
    await init_models(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register(
    client: httpx.AsyncClient,
    username: str = "alice",
    email: Optional[str] = None,
    password: str = "secret1",
    **extra: Any,
) -> httpx.Response:
    body = {
        "username": username,
        "email": email or f"{username}@x.com",
        "password": password,
        **extra,
    }
    return await client.post("/api/auth/register", json=body)


async def register_token(client: httpx.AsyncClient, username: str = "alice") -> str:
    resp = await register(client, username)
    assert resp.status_code == 201, resp.text
    return resp.json()["accessToken"]
