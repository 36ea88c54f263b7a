"""Async SQLAlchemy engine, session factory and the request-scoped session."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from reimbursement.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.LOG_LEVEL.lower() == "debug",
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by users, expenses and summaries."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request.

    Routers commit explicitly once the workflow step succeeded; anything
    left pending is committed here, and any exception rolls the whole
    request back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
