from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlmodel import SQLModel
from commutesafe.config import settings
from typing import Annotated, AsyncIterator, Optional
from fastapi import Depends

def build_engine(url: Optional[str] = None, **engine_kwargs) -> AsyncEngine:
    """
    Async engine for the location, friendship and SOS tables.

    SQLite gets a lock timeout so a location write waiting on a share grant
    (or the other way round) queues instead of failing with "database is locked".
    """
    url = url or settings.DATABASE_URL
    engine_kwargs.setdefault("echo", settings.DATABASE_ECHO)
    if url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"timeout": 30})
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **engine_kwargs)

engine = build_engine()

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; a request that dies mid-transaction is rolled back"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError:
            await session.rollback()
            raise

SessionDep = Annotated[AsyncSession, Depends(get_db)]

async def create_db_and_tables(bind: Optional[AsyncEngine] = None):
    # Register every table on the metadata before create_all
    from commutesafe.models import emergency, friendship, location, profile, route  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

async def dispose_engine():
    await engine.dispose()
