from datetime import datetime

import pytest

import app.models  # noqa: F401 - registers every table with Base
from app.database import Base, build_engine, build_session_factory
from app.models.event import Event
from app.models.user import User


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    db_file = tmp_path / "events.db"
    engine = build_engine(f"sqlite+aiosqlite:///{db_file}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def _create_user(db, email: str, name: str) -> User:
    user = User(email=email, name=name)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def host(db):
    return await _create_user(db, "host@user.com", "Host")


@pytest.fixture
async def guest(db):
    return await _create_user(db, "guest@user.com", "Guest")


@pytest.fixture
def make_event(db, host):
    """Persist an event owned by ``host`` unless ``user_id`` is overridden."""

    async def _make(**overrides) -> Event:
        values = dict(
            name="Weekly football match",
            description="Five-a-side on the east pitch, bring both shirts.",
            location="City Park",
            includes_food=False,
            includes_drinks=True,
            price=15,
            starts_at=datetime(2017, 6, 10, 18, 0),
            ends_at=datetime(2017, 6, 10, 20, 0),
            capacity=10,
            active=True,
            user_id=host.id,
        )
        values.update(overrides)
        event = Event(**values)
        db.add(event)
        await db.commit()
        return event

    return _make
