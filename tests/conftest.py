"""
Pytest fixtures for all tests.

Provides:
- Throwaway SQLite database per test
- Local storage in a temporary directory
- Token and client fixtures for each caller class
- Mocked Celery task queueing
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from filegate.core.database import Base, get_db
from filegate.core.security import create_access_token
from filegate.features.files.storage import LocalFileStorage, get_storage
from filegate.main import create_application

ADMIN_ID = "admin-oid-1"
ORG_USER_ID = "org-oid-1"
EXTERNAL_ID = "sp-1"


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(tmp_path):
    """
    Create test database engine.

    Each test gets its own SQLite file, so there is nothing to clean up.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'filegate_test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session for a test. Services commit on their own."""
    session_factory = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    """Local storage rooted in a temporary directory."""
    return LocalFileStorage(str(tmp_path / "storage"))


@pytest.fixture
def mock_celery(monkeypatch):
    """
    Record queued provisioning tasks instead of sending them to a broker.

    Returns a list of (task_name, kwargs) tuples.
    """
    from filegate.features.tenants import tasks

    queued: list[tuple[str, dict]] = []

    def recorder(name):
        def delay(*args, **kwargs):
            queued.append((name, kwargs))
        return delay

    monkeypatch.setattr(tasks.provision_tenant, "delay", recorder("provision_tenant"))
    monkeypatch.setattr(tasks.deprovision_tenant, "delay", recorder("deprovision_tenant"))

    return queued


@pytest_asyncio.fixture
async def app(db_session: AsyncSession, storage: LocalFileStorage, mock_celery):
    """
    Create FastAPI test application.

    Overrides the database and storage dependencies.
    """
    application = create_application()

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_storage] = lambda: storage

    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Unauthenticated async HTTP client.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/health/live")
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(
    caller_id: str | None,
    roles: list[str] | None = None,
    name: str | None = None,
) -> str:
    """Signed token for a caller (``caller_id=None`` omits oid/sub)."""
    claims: dict = {"roles": roles or []}
    if caller_id is not None:
        claims["oid"] = caller_id
    if name is not None:
        claims["preferred_username"] = name
    return create_access_token(claims)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(make_token(ADMIN_ID, ["SFT.Admin"], "admin@example.com"))


@pytest.fixture
def org_user_headers() -> dict[str, str]:
    return auth_headers(make_token(ORG_USER_ID, ["SFT.User"], "staff@example.com"))


@pytest.fixture
def external_headers() -> dict[str, str]:
    return auth_headers(make_token(EXTERNAL_ID, [], "acme-app"))
