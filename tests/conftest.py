"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from reimbursement.common.constants import ExpenseStatus, UserRole
from reimbursement.config import settings
from reimbursement.database import Base, get_db
from reimbursement.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import reimbursement.users.models  # noqa: F401
import reimbursement.expenses.models  # noqa: F401
import reimbursement.summaries.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from reimbursement.common.rate_limit import limiter
    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

async def make_user(
    db: AsyncSession,
    *,
    role: UserRole = UserRole.employee,
    display_name: str = "Test User",
    is_approved: bool = True,
    created_at: Optional[datetime] = None,
):
    """Insert a user and commit so API requests can see it."""
    from reimbursement.users.models import User

    user = User(
        id=uuid.uuid4(),
        external_id=f"ext-{uuid.uuid4().hex[:12]}",
        display_name=display_name,
        picture_url="https://example.com/avatar.png",
        role=role,
        is_approved=is_approved,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(user)
    await db.commit()
    return user


async def make_expense(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    description: str = "Taxi to client office",
    amount: str = "42.50",
    expense_date: Optional[date] = None,
    status: ExpenseStatus = ExpenseStatus.pending,
    created_at: Optional[datetime] = None,
):
    """Insert an expense directly, bypassing the service validation."""
    from reimbursement.expenses.models import Expense

    expense = Expense(
        id=uuid.uuid4(),
        user_id=user_id,
        description=description,
        amount=Decimal(amount),
        date=expense_date or date(2026, 1, 15),
        status=status,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(expense)
    await db.commit()
    return expense


@pytest.fixture
async def employee(db):
    return await make_user(db, display_name="Erin Employee")


@pytest.fixture
async def manager(db):
    return await make_user(db, role=UserRole.manager, display_name="Morgan Manager")


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(user_id: uuid.UUID, expired: bool = False) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
