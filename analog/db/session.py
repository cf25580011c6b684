from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession

from analog.core.config import settings
from analog.core.errors import StoreTransactionError
from analog.db.models import Base

logger = structlog.get_logger()


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
    for every new connection.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# echo=True prints SQL to the console (DEBUG only)
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)
enable_sqlite_foreign_keys(engine)

# The Session Factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def init_db(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Dependency for FastAPI Routes
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Unit of atomicity for compound writes.
    Commits on normal exit; any exception rolls back every row written
    inside the block. Store failures are re-raised as StoreTransactionError
    with the driver error attached, everything else propagates unchanged.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("store_transaction_rolled_back", operation=operation, error=str(e))
        raise StoreTransactionError(operation, e) from e
    except Exception:
        await db.rollback()
        logger.warning("transaction_aborted", operation=operation)
        raise
