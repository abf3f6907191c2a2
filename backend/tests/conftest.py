"""
CivicBridge Backend: Test Configuration (conftest.py)
=====================================================

Fixture Hierarchy (all function-scoped):
    engine          in-memory SQLite (aiosqlite) with every table created
    session_factory async_sessionmaker bound to that engine
    db_session      one AsyncSession for service-level tests
    users           politician, second politician, student, second student
    test_client     httpx AsyncClient over ASGITransport; the app's session
                    dependency is rebound to the test engine and status
                    notifications are captured by an AsyncMock
"""

import os
import tempfile

# Settings and the module-level engine are built on import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="civicbridge_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ.pop("NOTIFICATION_WEBHOOK_URL", None)

from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from civicbridge import models  # noqa: F401
from civicbridge.database import Base, build_engine, get_db_session
from civicbridge.models.user import User


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db_session) -> Dict[str, User]:
    """
    Seeded accounts, keyed by role:
        politician, other_politician, student, other_student
    """
    seeded = {
        "politician": User(id="pol-1", username="anna.mayor", email="anna@example.org", is_politician=True),
        "other_politician": User(id="pol-2", username="bernd.council", is_politician=True),
        "student": User(id="stu-1", username="clara", email="clara@example.org", is_politician=False),
        "other_student": User(id="stu-2", username="david", email=None, is_politician=False),
    }
    db_session.add_all(seeded.values())
    await db_session.commit()
    return seeded


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_pdf_bytes():
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


@pytest.fixture
def sample_png_bytes():
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"


@pytest_asyncio.fixture
async def dispatched():
    """AsyncMock standing in for NotificationDispatcher.dispatch_status_change."""
    from civicbridge.services.notification_service import notification_dispatcher

    with patch.object(
        notification_dispatcher,
        "dispatch_status_change",
        new_callable=AsyncMock,
        return_value=0,
    ) as mock:
        yield mock


@pytest_asyncio.fixture
async def test_client(session_factory, users, dispatched) -> AsyncGenerator[AsyncClient, None]:
    from civicbridge.main import app

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_db_session, None)
