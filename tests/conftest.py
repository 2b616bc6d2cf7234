"""Shared test fixtures for pytest"""
import os

# Settings are read at import time; configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-edu-access"
os.environ["REDIS_ENABLED"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker,  # noqa: E402
                                    create_async_engine)

from edu_access.domain.entities import AuthorizedActor  # noqa: E402
from edu_access.infrastructure.cache.redis_cache import CacheService  # noqa: E402
from edu_access.infrastructure.persistence.database import (  # noqa: E402
    Base, discard_after_commit, get_db, get_db_transactional, run_after_commit)
from edu_access.infrastructure.persistence.models import (  # noqa: E402
    Page, PageActionPermission, RolePagePermission)
from edu_access.infrastructure.security.jwt import create_access_token  # noqa: E402
from edu_access.main import app  # noqa: E402
from edu_access.presentation.api.dependencies import (  # noqa: E402
    get_cache_service, get_session_factory)
from tests.support.fake_cache import InMemoryCache  # noqa: E402
from tests.support.fake_store import InMemoryPermissionStore  # noqa: E402


@pytest.fixture
async def test_engine(tmp_path):
    """File-backed SQLite engine so separate sessions see committed data"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    # SQLite needs explicit BEGIN for SAVEPOINT support
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(test_db):
    """HTTP client for API testing; every dependency shares the test session"""

    async def override_get_db():
        yield test_db

    async def override_get_db_transactional():
        try:
            yield test_db
            await test_db.commit()
        except Exception:
            discard_after_commit(test_db)
            await test_db.rollback()
            raise
        await run_after_commit(test_db)

    async def override_get_cache_service():
        return CacheService()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_db_transactional] = override_get_db_transactional
    app.dependency_overrides[get_cache_service] = override_get_cache_service
    app.dependency_overrides[get_session_factory] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fake_store():
    return InMemoryPermissionStore()


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest.fixture
def admin_actor():
    return AuthorizedActor(
        user_id="user-admin",
        display_name="Admin User",
        role="admin",
        ip_address="10.0.0.1",
        user_agent="pytest",
    )


@pytest.fixture
def teacher_actor():
    return AuthorizedActor(user_id="user-teacher", display_name="Sok Dara", role="teacher")


@pytest.fixture
def auth_headers():
    """Build bearer headers for an actor: auth_headers("admin")"""

    def _headers(role: str, user_id: str | None = None, name: str | None = None) -> dict:
        token = create_access_token(
            user_id=user_id or f"user-{role}", role=role, display_name=name or role.title()
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def seeded_pages(test_db):
    """
    Pages with grants:
        teachers, classes, audit_logs, page_permissions, reports (conditional)
    admin holds resource access to all of them; teacher may view teachers
    and classes, and is explicitly denied deleting teachers.
    """
    pages = {
        name: Page(page_name=name, page_title=title, sort_order=order, menu_group=group)
        for name, title, order, group in [
            ("teachers", "Teachers", 1, "people"),
            ("classes", "Classes", 2, "people"),
            ("audit_logs", "Audit Logs", 3, "admin"),
            ("page_permissions", "Page Permissions", 4, "admin"),
            ("reports", "Reports", 5, None),
        ]
    }
    pages["reports"].menu_visibility = "conditional"
    test_db.add_all(pages.values())
    await test_db.flush()

    for page in pages.values():
        test_db.add(RolePagePermission(role="admin", page_id=page.id, is_allowed=True))
    for name in ("teachers", "classes", "reports"):
        test_db.add(RolePagePermission(role="teacher", page_id=pages[name].id, is_allowed=True))
    test_db.add(
        PageActionPermission(
            role="teacher", page_id=pages["teachers"].id, action_name="delete", is_allowed=False
        )
    )
    await test_db.commit()
    return pages
