import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from app.core import db as db_module
from app.core.security import hash_password
from app.core.sse import ConnectionRegistry
from app.main import app
from app.models.user import User


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest.fixture
def registry():
    """
    Fresh connection registry installed on the app for the duration of a test.
    """
    previous = app.state.connections
    app.state.connections = ConnectionRegistry(write_timeout=1.0)
    yield app.state.connections
    app.state.connections = previous


@pytest_asyncio.fixture
async def client(registry):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB
    and an empty connection registry.
    """
    await _init_test_db()
    try:
        transport = ASGITransport(app=app, lifespan="off")
    except TypeError:
        # Fallback for httpx versions that don't support lifespan parameter
        transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    await Tortoise.close_connections()


async def _create(role: str, password: str) -> tuple[User, str]:
    tag = uuid.uuid4().hex[:6]
    user = await User.create(
        email=f"{role}_{tag}@example.com",
        name=f"{role.title()} {tag}",
        password_hash=hash_password(password),
        role=role,
    )
    return user, password


@pytest_asyncio.fixture
async def create_admin():
    """
    Factory fixture to create admin users directly via ORM for privileged endpoints.
    """

    async def _create_admin(password: str = "AdminPass!23") -> tuple[User, str]:
        return await _create("admin", password)

    return _create_admin


@pytest_asyncio.fixture
async def create_parent():
    async def _create_parent(password: str = "ParentPass!23") -> tuple[User, str]:
        return await _create("parent", password)

    return _create_parent


@pytest_asyncio.fixture
async def create_childminder():
    async def _create_childminder(password: str = "MinderPass!23") -> tuple[User, str]:
        return await _create("childminder", password)

    return _create_childminder


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers
