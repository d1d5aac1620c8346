import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from commutesafe.database import build_engine, create_db_and_tables
from commutesafe.models.profile import Profile

@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool, echo=False)
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()

@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session

@pytest.fixture
def make_profile(db):
    async def _make(user_id, tracking_code=None, display_name=None, email=None):
        profile = Profile(
            id=user_id,
            tracking_code=tracking_code,
            display_name=display_name,
            email=email if email is not None else f"{user_id}@olfu.edu.ph"
        )
        db.add(profile)
        await db.commit()
        return profile
    return _make
