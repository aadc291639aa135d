"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.core.security import hash_password
from app.database import get_db
from app.main import app
from app.models.base import Base
from app.models.browser import Browser
from app.models.license import License
from app.models.locale import Locale
from app.models.user import User, UserRole
from app.services.catalog import ReferenceCatalog
from app.services.reference_data import seed_reference_data


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Keep rate limits and language detection out of the way by default."""
    settings = get_settings()
    monkeypatch.setattr(settings, "ENFORCE_SCRIPT_RATE_LIMITS", False)
    monkeypatch.setattr(settings, "ENABLE_DETECT_LOCALE", False)
    return settings


# ----------------------------------------------------------------------
# In-memory reference data for model tests
# ----------------------------------------------------------------------


@pytest.fixture
def english() -> Locale:
    return Locale(code="en", english_name="English", detect_language_code="en")


@pytest.fixture
def french() -> Locale:
    return Locale(code="fr", english_name="French", detect_language_code="fr")


@pytest.fixture
def german() -> Locale:
    return Locale(code="de", english_name="German", detect_language_code="de")


@pytest.fixture
def chrome() -> Browser:
    return Browser(code="chrome", name="Chrome")


@pytest.fixture
def firefox() -> Browser:
    return Browser(code="firefox", name="Firefox")


@pytest.fixture
def mit() -> License:
    return License(code="MIT", name="MIT License")


@pytest.fixture
def catalog(english, french, german, chrome, firefox, mit) -> ReferenceCatalog:
    return ReferenceCatalog.build(
        locales=[english, french, german],
        browsers=[chrome, firefox],
        licenses=[mit],
        sensitive_domains=["adult.example"],
    )


# ----------------------------------------------------------------------
# Database
# ----------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a throwaway SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Get test database session with reference data loaded."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        await seed_reference_data(session)
        yield session


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(db_session, email: str, name: str, password: str) -> User:
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=UserRole.USER,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session) -> User:
    """Create a test user."""
    return await _create_user(db_session, "test@example.com", "tester", "testpassword")


@pytest_asyncio.fixture
async def other_user(db_session) -> User:
    """Create a second user who doesn't author anything."""
    return await _create_user(db_session, "other@example.com", "other", "otherpassword")


@pytest_asyncio.fixture
async def auth_headers(client, test_user) -> dict:
    """Get authentication headers for test user."""
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": "test@example.com", "password": "testpassword"},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
