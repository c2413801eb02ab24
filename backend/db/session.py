"""
GroupBuy Database Session Management

Async SQLAlchemy engine and session factory. The API shares one pooled
engine; Celery jobs build a short-lived engine per run with
``build_session_factory`` and dispose it when the run ends.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def build_session_factory(database_url: str) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Engine + session factory for one-off worker runs (caller disposes the engine)."""
    job_engine = create_async_engine(database_url)
    return job_engine, async_sessionmaker(job_engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass
