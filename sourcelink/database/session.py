from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from opentelemetry import trace
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from sourcelink.config import settings
from sourcelink.logging import get_logger

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class Base(DeclarativeBase):
    """Base class for all document store models."""

    pass


class DatabaseSessionManager:
    """Manages document store sessions with connection pooling and observability."""

    def __init__(self, database_url: str, echo: bool = settings.DATABASE_ECHO) -> None:
        """Initialize the database session manager.

        Args:
            database_url: The database connection URL
            echo: Whether to echo SQL statements for debugging

        """
        self._database_url = database_url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._instrumented = False

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database session manager not initialized. Call initialize() first.")
        return self._engine

    async def initialize(self) -> None:
        """Initialize the database engine and session factory."""
        with tracer.start_as_current_span("database_initialize") as span:
            span.set_attribute("database.url", self._database_url.split("@")[-1])  # Hide credentials
            span.set_attribute("database.echo", self._echo)

            try:
                engine_kwargs: dict[str, Any] = {"echo": self._echo}

                # Pool sizing does not apply to SQLite's static/null pools
                if not self._database_url.startswith("sqlite"):
                    engine_kwargs.update(
                        {
                            "pool_size": settings.DATABASE_POOL_SIZE,
                            "max_overflow": settings.DATABASE_MAX_OVERFLOW,
                            "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
                            "pool_recycle": settings.DATABASE_POOL_RECYCLE,
                            "pool_pre_ping": settings.DATABASE_POOL_PRE_PING,
                        }
                    )

                self._engine = create_async_engine(self._database_url, **engine_kwargs)
                self._session_factory = async_sessionmaker(
                    bind=self._engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )

                if not self._instrumented:
                    SQLAlchemyInstrumentor().instrument(
                        engine=self._engine.sync_engine,
                        service=settings.OTEL_SERVICE_NAME,
                    )
                    self._instrumented = True

                logger.info(
                    "Database session manager initialized",
                    pool_size=engine_kwargs.get("pool_size"),
                    max_overflow=engine_kwargs.get("max_overflow"),
                )
                span.set_attribute("database.status", "initialized")

            except Exception as e:
                logger.error("Failed to initialize database session manager", error=str(e), exc_info=True)
                span.set_attribute("database.status", "failed")
                span.record_exception(e)
                raise

    async def create_tables(self) -> None:
        """Create every table registered on :class:`Base` that does not exist yet."""
        # Registers the models on Base.metadata
        import sourcelink.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Document store tables created", tables=sorted(Base.metadata.tables))

    async def close(self) -> None:
        """Close the database engine and cleanup resources."""
        with tracer.start_as_current_span("database_close") as span:
            if self._engine is None:
                logger.warning("Attempted to close database engine, but engine was None")
                span.set_attribute("database.status", "already_closed")
                return

            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine closed")
            span.set_attribute("database.status", "closed")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a session that commits on success and rolls back on error.

        Yields:
            AsyncSession: A database session

        Raises:
            RuntimeError: If the session manager is not initialized

        """
        if not self._session_factory:
            raise RuntimeError("Database session manager not initialized. Call initialize() first.")

        session_id = id(asyncio.current_task())
        session = self._session_factory()
        logger.debug("Database session created", session_id=session_id)

        try:
            yield session
            await session.commit()
            logger.debug("Database session committed", session_id=session_id)
        except Exception as e:
            logger.error("Database session error, rolling back", session_id=session_id, error=str(e))
            try:
                await session.rollback()
            except Exception as rollback_error:
                logger.error(
                    "Failed to rollback database session",
                    session_id=session_id,
                    rollback_error=str(rollback_error),
                    exc_info=True,
                )
            raise
        finally:
            await session.close()
            logger.debug("Database session closed", session_id=session_id)

    async def health_check(self) -> dict[str, Any]:
        """Check that the document store answers a trivial query."""
        with tracer.start_as_current_span("database_health_check") as span:
            if self._engine is None:
                return {"status": "unhealthy", "error": "Database engine not initialized"}

            try:
                async with self.get_session() as session:
                    await session.execute(text("SELECT 1"))
            except Exception as e:
                logger.error("Database health check failed", error=str(e), exc_info=True)
                span.set_attribute("database.health_status", "unhealthy")
                span.record_exception(e)
                return {"status": "unhealthy", "error": str(e)}

            span.set_attribute("database.health_status", "healthy")
            return {"status": "healthy", "database_url": self._database_url.split("@")[-1]}


# Global session manager instance
session_manager: Optional[DatabaseSessionManager] = None


def get_session_manager() -> DatabaseSessionManager:
    """Get the global database session manager.

    Raises:
        RuntimeError: If the session manager is not initialized

    """
    if session_manager is None:
        raise RuntimeError("Database session manager not initialized")
    return session_manager


def initialize_database() -> DatabaseSessionManager:
    """Create the global database session manager from settings."""
    global session_manager
    session_manager = DatabaseSessionManager(
        database_url=settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
    )
    return session_manager
