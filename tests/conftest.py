"""Shared test fixtures for habitscore tests."""

import os
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from habitscore.db.models import (  # noqa: E402
    Base,
    DailyRecord,
    Habit,
    HabitEntry,
    ScoredHabitRule,
    ScoringScheme,
    User,
)

# Monday
WEEK_START = date(2024, 3, 4)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'habitscore.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


def override_get_session(session_factory):
    """Build a ``get_session`` replacement bound to the test database."""

    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    return _get_session


# --- Seed helpers ---


async def add_user(session: AsyncSession, external_id: str = "user-1") -> User:
    user = User(external_id=external_id)
    session.add(user)
    await session.flush()
    return user


async def add_habit(
    session: AsyncSession, owner_id: int, name: str, value_kind: str = "boolean"
) -> Habit:
    habit = Habit(owner_id=owner_id, name=name, value_kind=value_kind)
    session.add(habit)
    await session.flush()
    return habit


async def add_scheme(
    session: AsyncSession,
    owner_id: int,
    name: str,
    rules: list[tuple[int, float, int]],
    is_active: bool = False,
) -> ScoringScheme:
    """Create a scheme with ``(habit_id, weight, target_frequency)`` rules."""
    scheme = ScoringScheme(owner_id=owner_id, name=name, is_active=is_active)
    scheme.rules = [
        ScoredHabitRule(habit_id=habit_id, weight=weight, target_frequency=target)
        for habit_id, weight, target in rules
    ]
    session.add(scheme)
    await session.flush()
    return scheme


async def add_record(
    session: AsyncSession,
    owner_id: int,
    day: date,
    completed: dict[int, bool],
    weekly_aggregate_id: int | None = None,
) -> DailyRecord:
    record = DailyRecord(
        owner_id=owner_id,
        date=day,
        weekly_aggregate_id=weekly_aggregate_id,
        entries=[HabitEntry(habit_id=h, completed=c) for h, c in completed.items()],
    )
    session.add(record)
    await session.flush()
    return record


@pytest_asyncio.fixture
async def seeded(session):
    """One owner with two boolean habits, an active scheme and an inactive one.

    The active scheme weighs reading 30 (target 3) and running 70 (target 7).
    The alternate scheme scores reading alone (weight 1, target 1).
    """
    user = await add_user(session)
    reading = await add_habit(session, user.id, "reading")
    running = await add_habit(session, user.id, "running")
    active = await add_scheme(
        session, user.id, "balanced", [(reading.id, 30, 3), (running.id, 70, 7)], is_active=True
    )
    alternate = await add_scheme(session, user.id, "reading only", [(reading.id, 1, 1)])
    await session.commit()
    return {
        "owner_id": user.id,
        "reading": reading.id,
        "running": running.id,
        "scheme": active.id,
        "alternate": alternate.id,
    }
