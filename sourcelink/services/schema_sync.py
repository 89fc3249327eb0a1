"""Schema synchronization: discover, persist and back-link an information schema.

A run goes through four stages:

1. discover the normalized tree through the data source's driver,
2. persist one columns document per table, in tree order,
3. persist the stripped tree as a new information schema document,
4. point the data source's ``settings.information_schema_id`` at it.

Column persistence is all-or-nothing: when a columns document or the tree
itself cannot be written, or the run is cancelled before the tree is written,
the columns documents already written by the same run are deleted again.
"""

import asyncio
import weakref
from collections.abc import Sequence
from typing import Optional

from opentelemetry import trace

from sourcelink.config import settings
from sourcelink.exceptions.datasource import CapabilityUnsupportedError
from sourcelink.integrations.information_schema import iter_tables, strip_columns, with_columns_ids
from sourcelink.logging import get_logger
from sourcelink.repositories.document_store import DocumentStore
from sourcelink.schemas.datasource import DataSourceRecord, DataSourceUpdate
from sourcelink.schemas.information_schema import Database
from sourcelink.schemas.sync import SyncResult, SyncStatus
from sourcelink.services.datasource_service import DataSourceService, error_message

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class InformationSchemaSynchronizer:
    """Runs schema synchronizations against a document store.

    Holds no state between runs. Concurrent runs on the same data source are
    serialized by a lock that lives only while some run holds or awaits it.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        datasource_service: Optional[DataSourceService] = None,
    ) -> None:
        self._document_store = document_store
        self._datasource_service = datasource_service or DataSourceService(document_store=document_store)
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def active_locks(self) -> int:
        """Number of data sources with a run in progress or waiting."""
        return len(self._locks)

    def _lock_for(self, datasource: DataSourceRecord) -> asyncio.Lock:
        key = (datasource.organization, datasource.id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def sync(self, datasource: DataSourceRecord, timeout: Optional[float] = None) -> SyncResult:
        """Synchronize the information schema of one data source.

        Args:
            datasource: Stored data source record
            timeout: Maximum seconds for each backend call during discovery

        Returns:
            SyncResult: ``skipped``, ``failed`` or ``completed``

        Raises:
            DecryptionError: If the stored params cannot be decrypted
            UnknownSourceTypeError: If the data source type has no driver

        """
        if not settings.SCHEMA_SYNC_LOCK_ENABLED:
            return await self._run(datasource, timeout)

        lock = self._lock_for(datasource)
        if lock.locked():
            logger.info("Waiting for running schema sync", datasource_id=datasource.id)
        async with lock:
            return await self._run(datasource, timeout)

    async def _run(self, datasource: DataSourceRecord, timeout: Optional[float]) -> SyncResult:
        with tracer.start_as_current_span(
            "schema_sync.run",
            attributes={"datasource.id": datasource.id, "datasource.type": datasource.type.value},
        ) as span:
            result = await self._synchronize(datasource, timeout)
            span.set_attribute("sync.status", result.status.value)
            span.set_attribute("sync.tables", result.tables_synced)

            run_logger = logger.bind(datasource_id=datasource.id, organization=datasource.organization)
            log = run_logger.info if result.status != SyncStatus.FAILED else run_logger.warning
            log(
                "Schema sync finished",
                status=result.status.value,
                information_schema_id=result.information_schema_id,
                tables_synced=result.tables_synced,
                error=result.error,
            )
            return result

    async def _synchronize(self, datasource: DataSourceRecord, timeout: Optional[float]) -> SyncResult:
        organization = datasource.organization
        integration = self._datasource_service.get_integration(datasource)

        with tracer.start_as_current_span("schema_sync.discover"):
            try:
                tree = await self._datasource_service.discover_information_schema(integration, timeout=timeout)
            except CapabilityUnsupportedError:
                return SyncResult(status=SyncStatus.SKIPPED, datasource_id=datasource.id)
            except Exception as e:
                return SyncResult(status=SyncStatus.FAILED, datasource_id=datasource.id, error=error_message(e))

        with tracer.start_as_current_span("schema_sync.persist_columns") as span:
            columns_ids: list[str] = []
            try:
                for table in iter_tables(tree):
                    document = await self._document_store.create_information_schema_columns(table.columns, organization)
                    columns_ids.append(document.id)
            except asyncio.CancelledError:
                await self._delete_columns_on_cancel(columns_ids, organization)
                raise
            except Exception as e:
                span.record_exception(e)
                await self._delete_columns(columns_ids, organization)
                return SyncResult(
                    status=SyncStatus.FAILED,
                    datasource_id=datasource.id,
                    error=f"Failed to persist columns of table {len(columns_ids) + 1}: {error_message(e)}",
                )

        with tracer.start_as_current_span("schema_sync.persist_tree") as span:
            try:
                information_schema_id = await self._document_store.create_information_schema(
                    self._prepare_tree(tree, columns_ids),
                    organization,
                    datasource.id,
                )
            except asyncio.CancelledError:
                await self._delete_columns_on_cancel(columns_ids, organization)
                raise
            except Exception as e:
                span.record_exception(e)
                await self._delete_columns(columns_ids, organization)
                return SyncResult(
                    status=SyncStatus.FAILED,
                    datasource_id=datasource.id,
                    error=f"Failed to persist information schema: {error_message(e)}",
                )

        with tracer.start_as_current_span("schema_sync.backlink") as span:
            try:
                await self._document_store.update_data_source(
                    datasource.id,
                    organization,
                    DataSourceUpdate(settings={"information_schema_id": information_schema_id}),
                )
            except Exception as e:
                span.record_exception(e)
                logger.warning(
                    "Information schema left unreferenced",
                    datasource_id=datasource.id,
                    information_schema_id=information_schema_id,
                )
                return SyncResult(
                    status=SyncStatus.FAILED,
                    datasource_id=datasource.id,
                    information_schema_id=information_schema_id,
                    error=f"Failed to link information schema to data source: {error_message(e)}",
                    tables_synced=len(columns_ids),
                )

        return SyncResult(
            status=SyncStatus.COMPLETED,
            datasource_id=datasource.id,
            information_schema_id=information_schema_id,
            tables_synced=len(columns_ids),
        )

    @staticmethod
    def _prepare_tree(tree: Sequence[Database], columns_ids: Sequence[str]) -> list[Database]:
        return strip_columns(with_columns_ids(tree, columns_ids))

    async def _delete_columns(self, columns_ids: Sequence[str], organization: str) -> None:
        if not columns_ids:
            return
        try:
            deleted = await self._document_store.delete_information_schema_columns(columns_ids, organization)
        except Exception as e:
            logger.exception(
                "Failed to delete columns of aborted schema sync",
                organization=organization,
                columns_ids=list(columns_ids),
                error=error_message(e),
            )
            return
        logger.info("Deleted columns of aborted schema sync", organization=organization, deleted=deleted)

    async def _delete_columns_on_cancel(self, columns_ids: Sequence[str], organization: str) -> None:
        # Shielded so a second cancellation cannot interrupt the cleanup
        logger.warning("Schema sync cancelled", organization=organization, columns_written=len(columns_ids))
        await asyncio.shield(self._delete_columns(list(columns_ids), organization))
