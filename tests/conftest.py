"""
Pytest fixtures for all tests.

Provides:
- Test database (in-memory SQLite by default, TEST_DATABASE_URL to override)
- Service instances wired to recording fakes for email and audit
- Authenticated test clients
- Seeded roles and factory-built users and tenants
"""

import os
from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from app.config import settings
from app.core.background import BackgroundQueue
from app.core.database import Base, get_db
from app.core.security import TokenService
from app.core.services import (
    get_file_store_instance,
    get_identity_service,
    get_role_registry,
    get_tenant_service,
    get_token_service,
)
from app.features.auth.service import UserIdentityService
from app.features.notifications.email import EmailDispatcher
from app.features.notifications.storage import LocalFileStore
from app.features.roles.service import role_registry
from app.features.tenants.membership import membership_store
from app.features.tenants.service import TenantService
from app.main import create_application
from app.models import Role, RoleName, Tenant, User
from tests.factories import TenantFactory, UserFactory
from tests.fakes import (
    TEST_SECRETS,
    InMemoryRevocationStore,
    RecordingAuditSink,
    RecordingEmailSender,
)

# Test database URL (separate from development database)
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


# Database

@pytest_asyncio.fixture
async def test_db_engine():
    """
    Create test database engine with fresh tables.

    In-memory SQLite needs a single shared connection (StaticPool) and
    foreign keys switched on for ON DELETE CASCADE.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session for a test.

    Services commit their own work, so isolation comes from recreating
    the tables for every test.
    """
    async with session_factory() as session:
        yield session


# Background work and fakes

@pytest_asyncio.fixture
async def queue() -> AsyncGenerator[BackgroundQueue, None]:
    background = BackgroundQueue(maxsize=100, workers=1, job_timeout=1.0, name="test")
    await background.start()
    yield background
    await background.stop(drain_timeout=2.0)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def revocation_store() -> InMemoryRevocationStore:
    return InMemoryRevocationStore()


@pytest.fixture
def token_service(revocation_store) -> TokenService:
    return TokenService(TEST_SECRETS, revocation_store)


@pytest.fixture
def file_store(tmp_path) -> LocalFileStore:
    return LocalFileStore(base_path=str(tmp_path / "uploads"), base_url="/uploads")


@pytest.fixture
def dispatcher(email_sender, queue) -> EmailDispatcher:
    return EmailDispatcher(email_sender, queue)


@pytest.fixture
def identity_service(token_service, dispatcher, audit) -> UserIdentityService:
    return UserIdentityService(
        tokens=token_service,
        roles=role_registry,
        memberships=membership_store,
        email=dispatcher,
        audit=audit,
        config=settings,
    )


@pytest.fixture
def tenant_service(dispatcher, audit) -> TenantService:
    return TenantService(
        memberships=membership_store,
        roles=role_registry,
        email=dispatcher,
        audit=audit,
    )


# Seed data

@pytest_asyncio.fixture
async def roles(db_session: AsyncSession) -> dict[str, Role]:
    """The three system roles by name."""
    await role_registry.seed_default_roles(db_session)
    return {r.name: r for r in await role_registry.list_roles(db_session)}


@pytest_asyncio.fixture
async def superadmin(db_session: AsyncSession, roles) -> User:
    return await UserFactory.create(
        db_session, roles[RoleName.SUPERADMIN], email="root@example.com", username="root"
    )


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, roles) -> User:
    return await UserFactory.create(db_session, roles[RoleName.ADMIN])


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, roles) -> User:
    """Verified USER with password Test123!"""
    return await UserFactory.create(
        db_session, roles[RoleName.USER], email="test@example.com", username="tester"
    )


@pytest_asyncio.fixture
async def test_tenant(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, name="Test Corporation")


# HTTP

@pytest_asyncio.fixture
async def app(db_session, token_service, identity_service, tenant_service, file_store):
    """
    Create FastAPI test application.

    Overrides the database session and every service with test instances.
    """
    application = create_application()

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_token_service] = lambda: token_service
    application.dependency_overrides[get_identity_service] = lambda: identity_service
    application.dependency_overrides[get_tenant_service] = lambda: tenant_service
    application.dependency_overrides[get_role_registry] = lambda: role_registry
    application.dependency_overrides[get_file_store_instance] = lambda: file_store

    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/tenants/current")
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def bearer(token_service: TokenService, user: User) -> dict[str, str]:
    """Authorization header for a user."""
    token = token_service.create_access_token(
        user.id, user.role_id, user.role_name, timedelta(hours=1)
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(token_service):
    """Factory for Authorization headers: auth_headers(user)."""
    return lambda user: bearer(token_service, user)
