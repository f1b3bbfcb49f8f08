import os
import uuid
from typing import AsyncGenerator, Optional

# Settings are read once at import; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest_registrations.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402
from services.registrations_service import models as _models  # noqa: E402, F401
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def _serialize_sqlite_writers(engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    Concurrent sessions then queue behind each other the way row locks
    serialize them on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Fresh database per test: a SQLite file under tmp_path, or the server
    named by TEST_DATABASE_URL.
    """
    url = os.environ.get("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'registrations.db'}"
    )
    engine = create_async_engine(url, future=True)
    if url.startswith("sqlite"):
        _serialize_sqlite_writers(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    """Independent sessions, one per simulated concurrent caller."""
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class CallerState:
    """The identity the overridden auth dependency hands to routers."""

    def __init__(self):
        self.user: Optional[AuthUser] = None

    def as_member(self, member_id: uuid.UUID) -> AuthUser:
        self.user = AuthUser(
            sub=f"user-{member_id}", role="authenticated", member_id=member_id
        )
        return self.user

    def as_admin(self) -> AuthUser:
        self.user = AuthUser(sub="admin-user", role="admin")
        return self.user


@pytest.fixture
def caller() -> CallerState:
    return CallerState()


@pytest_asyncio.fixture
async def client(session_factory, caller) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB/auth dependencies.
    Each request gets its own session, as in production.
    """
    from services.registrations_service.app.main import app

    async def _override_db():
        async with session_factory() as session:
            yield session

    async def _override_user():
        if caller.user is None:
            return AuthUser(sub="anonymous", role="authenticated")
        return caller.user

    app.dependency_overrides[get_async_db] = _override_db
    app.dependency_overrides[get_current_user] = _override_user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
