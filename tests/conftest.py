"""Shared test fixtures for the project tracker service."""

import os

# Set test settings before any app imports trigger Settings() validation.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-for-unit-tests")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.main import app  # noqa: E402
from app.models.settings import default_services, default_system_health  # noqa: E402
from app.services.backup_scheduler import BackupScheduler  # noqa: E402
from tests.helpers.token_factory import create_access_token  # noqa: E402

# ---------------------------------------------------------------------------
# Fake Redis (drop-in async replacement)
# ---------------------------------------------------------------------------


def _make_fake_redis():
    """Create a fakeredis instance that behaves like redis.asyncio.Redis."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


# ---------------------------------------------------------------------------
# Mock DB session
# ---------------------------------------------------------------------------


def _make_mock_session():
    """Create a mock async DB session.

    Supports ``async with factory() as session`` used by ``get_db_session``,
    ``session.add`` / ``flush`` used by the audit helpers, savepoints via
    ``begin_nested`` and the readiness probe (``SELECT 1``).
    """
    session = AsyncMock()
    result_mock = MagicMock()
    result_mock.scalar.return_value = 1
    session.execute.return_value = result_mock
    session.add = MagicMock()
    session.begin_nested = MagicMock(return_value=AsyncMock())
    session.close = AsyncMock()
    return session


def _make_mock_session_factory():
    """Return a callable that mimics ``async_sessionmaker().__call__()``."""
    mock_session = _make_mock_session()
    factory = MagicMock()
    ctx = AsyncMock()
    ctx.__aenter__.return_value = mock_session
    factory.return_value = ctx
    return factory, mock_session


def _make_mock_scheduler():
    """A scheduler double that records schedule/stop calls without timers."""
    scheduler = MagicMock(spec=BackupScheduler)
    scheduler.is_running = False
    scheduler.active_frequency = None
    return scheduler


# ---------------------------------------------------------------------------
# HTTP client fixture (FastAPI app with mocked infra)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the FastAPI app.

    Infrastructure (DB, Redis, backups, scheduler) is mocked so tests run
    without devstack. The shared response cache is emptied and re-enabled
    around every test.
    """
    session_factory, _ = _make_mock_session_factory()
    fake_redis = _make_fake_redis()

    app.state.engine = MagicMock()
    app.state.session_factory = session_factory
    app.state.redis = fake_redis
    app.state.backup_service = MagicMock()
    app.state.backup_scheduler = _make_mock_scheduler()
    app.state.started_at = 0.0
    app.state.response_cache.set_enabled(True)
    app.state.response_cache.invalidate_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.response_cache.invalidate_all()
    await fake_redis.aclose()


@pytest_asyncio.fixture()
async def db_session():
    """Provide a mock database session."""
    return _make_mock_session()


@pytest_asyncio.fixture()
async def redis_client():
    """Provide a fake Redis client."""
    client = _make_fake_redis()
    yield client
    await client.aclose()


# ---------------------------------------------------------------------------
# Auth helpers: generate JWT tokens directly (no login endpoint needed)
# ---------------------------------------------------------------------------


def _make_token(role: str, username: str, user_id: str | None = None) -> str:
    """Create a valid JWT access token for testing."""
    return create_access_token(
        user_id=user_id or str(uuid.uuid4()),
        role=role,
        username=username,
        email=f"{username}@test.example.com",
    )


def _auth_headers(role: str, username: str, user_id: str | None = None) -> dict[str, str]:
    """Return Authorization header dict with a valid JWT."""
    token = _make_token(role, username, user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def admin_client(client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client pre-authenticated as admin user."""
    client.headers.update(_auth_headers("admin", "admin"))
    yield client
    client.headers.pop("Authorization", None)


@pytest_asyncio.fixture()
async def mentor_client(client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client pre-authenticated as mentor user."""
    client.headers.update(_auth_headers("mentor", "mentor"))
    yield client
    client.headers.pop("Authorization", None)


@pytest_asyncio.fixture()
async def student_client(client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client pre-authenticated as student user."""
    client.headers.update(_auth_headers("student", "student"))
    yield client
    client.headers.pop("Authorization", None)


# ---------------------------------------------------------------------------
# Mock ORM model factories
# ---------------------------------------------------------------------------

_NOW = datetime.now(UTC)


def _make_settings_model(**overrides):
    """Return a SimpleNamespace that looks like a SystemSettings ORM instance."""
    data = {
        "id": 1,
        "maintenance_mode": False,
        "allow_registration": True,
        "email_notifications": True,
        "backup_frequency": "daily",
        "log_retention": 30,
        "session_timeout": 60,
        "max_file_upload_size": 10,
        "rate_limiting": 100,
        "cache_expiration": 24,
        "services": default_services(),
        "last_backup_time": None,
        "last_health_check": None,
        "system_health": default_system_health(),
    }
    data.update(overrides)
    ns = SimpleNamespace(**data)
    ns.is_service_enabled = lambda name: bool(ns.services.get(name, False))
    return ns


def _make_project_model(**overrides):
    """Return a SimpleNamespace that looks like a Project ORM instance."""
    data = {
        "id": str(uuid.uuid4()),
        "name": "Capstone",
        "description": "Final year project",
        "owner_id": str(uuid.uuid4()),
        "mentor_id": None,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def _make_sprint_model(**overrides):
    """Return a SimpleNamespace that looks like a Sprint ORM instance."""
    data = {
        "id": str(uuid.uuid4()),
        "project_id": str(uuid.uuid4()),
        "name": "Sprint 1",
        "goal": None,
        "start_date": datetime(2024, 1, 1, tzinfo=UTC),
        "end_date": datetime(2024, 1, 5, tzinfo=UTC),
        "status": "Planned",
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def _make_task_model(**overrides):
    """Return a SimpleNamespace that looks like a Task ORM instance."""
    data = {
        "id": str(uuid.uuid4()),
        "project_id": str(uuid.uuid4()),
        "sprint_id": None,
        "title": "Write report",
        "description": None,
        "status": "Pending",
        "story_points": 3,
        "completed_at": None,
        "is_verified": False,
        "verified_at": None,
        "verified_by": None,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def _make_audit_model(**overrides):
    """Return a SimpleNamespace that looks like an AuditLog ORM instance."""
    data = {
        "id": str(uuid.uuid4()),
        "actor_id": str(uuid.uuid4()),
        "action": "DELETE_TASK",
        "resource": "Task: 1",
        "details": {},
        "ip_address": "127.0.0.1",
        "user_agent": "pytest",
        "created_at": _NOW,
    }
    data.update(overrides)
    return SimpleNamespace(**data)
