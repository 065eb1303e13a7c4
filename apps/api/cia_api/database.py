from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cia_api.config import settings


def engine_options(url: str, echo: bool = False) -> dict[str, Any]:
    """Pool options for ``create_async_engine``.

    SQLite (used by the test suite) manages its own pool and rejects the
    sizing arguments.
    """
    if url.startswith("sqlite"):
        return {"echo": echo}
    return {
        "echo": echo,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 300,     # Recycle connections every 5 minutes to avoid stale connections
        "pool_pre_ping": True,   # Test connection health before using it from the pool
    }


engine = create_async_engine(
    settings.database_url,
    **engine_options(settings.database_url, echo=settings.debug),
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass
