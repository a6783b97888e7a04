'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE against a throwaway SQLite file
   before any application code is imported.
2. Creating a fresh schema for every test and providing an isolated session.
3. Providing a FastAPI TestClient for endpoint testing.
4. Providing instances of all service classes, pre-injected with the test session.
'''
import os
import tempfile

# --- Test environment (must be set before the app reads its settings) ---
_TEST_DB_DIR = tempfile.mkdtemp(prefix="skill_swap_tests_")
os.environ["TEST_MODE"] = "True"
os.environ["DATABASE_URL_TEST"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ.setdefault("DATABASE_URL_PROD", "postgresql+asyncpg://localhost/skill_swap")
os.environ.setdefault("SECRET_KEY", "skill-swap-test-secret")
os.environ["ADMIN_EMAILS"] = '["admin@skillswap.io"]'

import pytest
from typing import AsyncGenerator

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.pool import NullPool

# --- Application Imports ---
from src.skill_swap_backend.main import app
from src.skill_swap_backend.common.config import settings
from src.skill_swap_backend.database.engine import get_db_session
from src.skill_swap_backend.database import models as db_models
from src.skill_swap_backend.services.user_service import UserService
from src.skill_swap_backend.services.availability_store import AvailabilityStore
from src.skill_swap_backend.services.availability_service import AvailabilityService
from src.skill_swap_backend.services.connection_store import ConnectionStore
from src.skill_swap_backend.services.connection_service import ConnectionService

from tests.database.factories import UserFactory

ADMIN_EMAIL = "admin@skillswap.io"


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


# --- 1. Schema ---

@pytest.fixture(scope="function")
def db_schema():
    """
    Creates every table before the test and drops them afterwards,
    so each test starts from an empty database.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your environment."

    sync_engine = create_engine(settings.database_url.replace("+aiosqlite", ""))
    db_models.Base.metadata.create_all(sync_engine)
    yield
    db_models.Base.metadata.drop_all(sync_engine)
    sync_engine.dispose()


# --- 2. Client (For API Tests) ---

@pytest.fixture(scope="function")
def client(db_schema) -> TestClient:
    """
    Runs the app with `get_db_session` overridden so that every request
    gets its own session on the test database and commits on success.

    A NullPool engine is created per request because the TestClient runs
    the app on its own event loop.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        engine = create_async_engine(settings.database_url, poolclass=NullPool)
        session = async_sessionmaker(
            bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
            await engine.dispose()

    app.dependency_overrides[get_db_session] = override_get_db_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- 3. Session (For Service Tests) ---

@pytest.fixture(scope="function")
async def db_engine(db_schema) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a session on the fresh schema. API tests commit their seed
    data through it so the app's own sessions can see it.
    """
    session = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )()
    UserFactory._meta.sqlalchemy_session = session.sync_session
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()
        UserFactory._meta.sqlalchemy_session = None


# --- 4. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db=db_session)

@pytest.fixture(scope="function")
def availability_store(db_session: AsyncSession) -> AvailabilityStore:
    return AvailabilityStore(db=db_session)

@pytest.fixture(scope="function")
def connection_store(db_session: AsyncSession) -> ConnectionStore:
    return ConnectionStore(db=db_session)

@pytest.fixture(scope="function")
def availability_service(availability_store: AvailabilityStore) -> AvailabilityService:
    return AvailabilityService(store=availability_store)

@pytest.fixture(scope="function")
def availability_service_sync() -> AvailabilityService:
    """
    A service without a store, for the pure validation helpers.
    """
    return AvailabilityService(store=None)

@pytest.fixture(scope="function")
def connection_service(
    connection_store: ConnectionStore,
    availability_store: AvailabilityStore,
    user_service: UserService
) -> ConnectionService:
    return ConnectionService(
        connection_store=connection_store,
        availability_store=availability_store,
        user_service=user_service
    )


# --- 5. DATA FIXTURES ---

async def _create_user(db_session: AsyncSession, **kwargs) -> db_models.Users:
    user = UserFactory(**kwargs)
    await db_session.flush()
    return user

@pytest.fixture(scope="function")
async def user_a(db_session: AsyncSession) -> db_models.Users:
    return await _create_user(db_session, name="Alice Learner")

@pytest.fixture(scope="function")
async def user_b(db_session: AsyncSession) -> db_models.Users:
    return await _create_user(db_session, name="Bob Mentor")

@pytest.fixture(scope="function")
async def user_c(db_session: AsyncSession) -> db_models.Users:
    """A user unrelated to any connection between user_a and user_b."""
    return await _create_user(db_session, name="Carol Outsider")

@pytest.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> db_models.Users:
    return await _create_user(db_session, name="Site Admin", email=ADMIN_EMAIL)
