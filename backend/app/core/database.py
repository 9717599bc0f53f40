"""Database configuration and session management."""

from collections.abc import Generator
from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, create_engine, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from app.core.config import settings

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Create async engine (for startup schema creation)
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

# Lazy initialized sync engine (for request handlers)
_sync_engine = None


def get_sync_engine():
    """Get or create sync engine for request-scoped sessions.

    Lazily creates the sync engine on first use to avoid import errors
    when psycopg2 is not installed (e.g., in test environments).
    """
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = create_engine(
            settings.sync_database_url,
            echo=settings.debug,
            future=True,
        )
    return _sync_engine


# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Provides common columns and configuration for all models:
    - id: UUID primary key (auto-generated)
    - created_at: Timestamp when record was created
    """

    # Common columns for all models
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


def get_sync_db() -> Generator[Session, None, None]:
    """Dependency to get a synchronous database session.

    The session commits when the request handler returns normally and
    rolls back on any exception, so a suggestion transition and its
    enrollment writes land together or not at all.

    Usage in FastAPI:
        @router.post("/suggestions/{suggestion_id}/approve")
        def approve(db: Session = Depends(get_sync_db)):
            ...
    """
    session = Session(get_sync_engine(), expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def init_db() -> None:
    """Initialize database tables.

    For development only - use Alembic migrations in production.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
    if _sync_engine is not None:
        _sync_engine.dispose()
