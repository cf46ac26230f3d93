"""
Database engine and sessions.

PostgreSQL through asyncpg in production; the same models run on SQLite
(aiosqlite) for local experiments and tests, which takes no pool sizing.
"""

from typing import Any, Dict
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from transport_backend.app.core.config import settings

Base = declarative_base()


def engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Objects stay readable after commit; actions return them as response data
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create every table registered on ``Base`` that does not exist yet."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """
    FastAPI dependency: one session per request.

    Work the request did not commit is rolled back when it ends.
    """
    async with AsyncSessionLocal() as session:
        yield session
