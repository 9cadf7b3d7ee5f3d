# coursestore/core/database.py
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import DeclarativeBase

from coursestore.core.config import get_database_url


class Base(DeclarativeBase):
    pass


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    # pysqlite/aiosqlite emit their own BEGIN lazily, which breaks SAVEPOINT.
    # Take over transaction start so begin_nested() works.
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_engine(db_url: str) -> AsyncEngine:
    # Configure engine based on database type
    if "sqlite" in db_url:
        engine = create_async_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False}
        )
        _enable_sqlite_savepoints(engine)
        return engine

    return create_async_engine(
        db_url,
        pool_pre_ping=True,
        pool_recycle=3600
    )


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, expire_on_commit=False, class_=AsyncSession)


engine = make_engine(get_database_url())
SessionLocal = make_sessionmaker(engine)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create all tables registered on Base."""
    import coursestore.models  # noqa: F401  (registers mappers)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with SessionLocal() as session:
        yield session
