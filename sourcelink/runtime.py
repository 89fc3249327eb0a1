"""Process startup and shutdown for embedders of sourcelink."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sourcelink.config import settings
from sourcelink.database.session import DatabaseSessionManager, initialize_database
from sourcelink.logging import configure_logging, get_logger
from sourcelink.observability import setup_tracing, shutdown_tracing
from sourcelink.repositories.document_store import SqlAlchemyDocumentStore
from sourcelink.services.schema_sync import InformationSchemaSynchronizer

logger = get_logger(__name__)


async def startup(create_tables: bool = False) -> DatabaseSessionManager:
    """Configure logging and tracing, then connect the document store.

    Args:
        create_tables: Create missing document store tables

    Returns:
        DatabaseSessionManager: The initialized global session manager

    """
    configure_logging()
    setup_tracing()
    logger.info("Starting sourcelink", version=settings.APP_VERSION, environment=settings.ENVIRONMENT.value)

    db_manager = initialize_database()
    try:
        await db_manager.initialize()
        if create_tables:
            await db_manager.create_tables()
    except Exception as e:
        logger.error("Failed to initialize document store", error=str(e))
        raise

    logger.info("Document store initialized")
    return db_manager


async def shutdown(db_manager: DatabaseSessionManager) -> None:
    await db_manager.close()
    shutdown_tracing()
    logger.info("sourcelink shut down")


@asynccontextmanager
async def lifespan(create_tables: bool = False) -> AsyncGenerator[InformationSchemaSynchronizer, None]:
    """Run sourcelink for the duration of the block.

    Yields:
        InformationSchemaSynchronizer: Synchronizer bound to the configured document store

    """
    db_manager = await startup(create_tables=create_tables)
    try:
        yield InformationSchemaSynchronizer(SqlAlchemyDocumentStore(db_manager))
    finally:
        await shutdown(db_manager)
