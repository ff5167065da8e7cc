"""Async SQLAlchemy database engine and session management."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from habitscore.config import settings
from habitscore.shared.errors import InternalError

logger = structlog.get_logger()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def dialect_insert(session: AsyncSession):
    """Dialect-specific ``insert`` construct that supports ON CONFLICT clauses."""
    dialect = session.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[dialect]
    except KeyError:
        raise InternalError(f"Unsupported database dialect for upsert: {dialect}") from None


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one all-or-nothing unit of work.

    Any exception rolls back every write made inside the block. Store
    failures are logged and re-raised as ``InternalError`` so callers can
    safely retry; domain errors propagate unchanged.
    """
    try:
        async with session.begin():
            yield session
    except SQLAlchemyError as exc:
        logger.error("transaction_failed", error=str(exc), exc_info=True)
        raise InternalError("Storage operation failed") from exc


async def init_db() -> None:
    """Create missing tables.

    Deployments that set `auto_create_tables` off apply the Alembic revisions
    under `habitscore/db/migrations` instead.
    """
    from habitscore.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized")


async def check_db() -> bool:
    """Check database connectivity."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("database_check_failed")
        return False
