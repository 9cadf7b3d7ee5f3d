import os
import tempfile
from decimal import Decimal

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "coursestore-test-logs"))
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest_asyncio
from sqlalchemy import func, select

from coursestore.core.database import make_engine, make_sessionmaker, init_models
from coursestore.models import Course, StudentProfile, User

PARENT_ID = 1
OTHER_PARENT_ID = 2
STUDENT_ID = 100
FOREIGN_STUDENT_ID = 200


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return make_sessionmaker(engine)


@pytest_asyncio.fixture
async def seed(session_factory):
    async with session_factory() as s:
        s.add_all([
            User(id=PARENT_ID, name="Parent One", email="parent1@example.com", password_hash="x"),
            User(id=OTHER_PARENT_ID, name="Parent Two", email="parent2@example.com", password_hash="x"),
        ])
        s.add_all([
            Course(id=10, title="Scratch for Kids", description="Blocks", price=Decimal("10.00")),
            Course(id=11, title="Python Basics", description="Intro", price=Decimal("10.00")),
            Course(id=12, title="Retired Course", price=Decimal("5.00"), is_active=False),
        ])
        await s.flush()
        s.add_all([
            StudentProfile(id=STUDENT_ID, parent_user_id=PARENT_ID, name="Ada", age=9),
            StudentProfile(id=FOREIGN_STUDENT_ID, parent_user_id=OTHER_PARENT_ID, name="Bob", age=11),
        ])
        await s.commit()


@pytest_asyncio.fixture
async def db(session_factory, seed):
    async with session_factory() as session:
        yield session


async def count_rows(session_factory, model, *where) -> int:
    async with session_factory() as s:
        stmt = select(func.count()).select_from(model)
        if where:
            stmt = stmt.where(*where)
        return int((await s.execute(stmt)).scalar_one())
