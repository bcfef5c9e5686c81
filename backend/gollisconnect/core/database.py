from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, QueuePool
from typing import AsyncGenerator, Optional

from fastapi import Request

from gollisconnect.core.config import Settings

# Create base class for models (can be defined before engine)
Base = declarative_base()


def get_database_url(raw_url: str) -> str:
    """Get properly formatted database URL"""
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://")
    return raw_url


class Database:
    """
    Owns the engine and session factory for one application instance.

    Built once in the application lifespan and kept on ``app.state.database``;
    request handlers receive sessions through ``get_db``.

    Connection pooling strategy:
    - SQLite: NullPool (required for thread safety)
    - PostgreSQL Development: NullPool (simpler debugging)
    - PostgreSQL Production: QueuePool with connection limits
    """

    def __init__(self, config: Settings, url: Optional[str] = None):
        self.url = get_database_url(url or config.DATABASE_URL)
        self.engine: AsyncEngine = self._create_engine(config)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )

    def _create_engine(self, config: Settings) -> AsyncEngine:
        if "sqlite" in self.url:
            # SQLite requires NullPool for thread safety
            return create_async_engine(
                self.url,
                echo=config.DB_ECHO,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        if config.DEBUG or config.ENVIRONMENT == "development":
            return create_async_engine(
                self.url,
                echo=config.DB_ECHO,
                poolclass=NullPool,
            )
        return create_async_engine(
            self.url,
            echo=config.DB_ECHO,
            poolclass=QueuePool,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_timeout=config.DB_POOL_TIMEOUT,
            pool_recycle=config.DB_POOL_RECYCLE,
            pool_pre_ping=True,  # Verify connections before use
        )

    async def init_db(self) -> None:
        """Create all tables known to the model metadata"""
        import gollisconnect.models  # noqa: F401  register models on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()


# Dependency to get DB session
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session - only commits if there are pending changes"""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            # Only commit if there are pending changes (new, dirty, or deleted objects)
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise
