"""
Unit tests for the schema synchronization orchestrator.
"""

import asyncio
import gc

import pytest

from sourcelink.config import settings
from sourcelink.exceptions import DecryptionError
from sourcelink.integrations.information_schema import iter_tables
from sourcelink.integrations.types import DataSourceType
from sourcelink.schemas.datasource import DataSourceRecord
from sourcelink.schemas.sync import SyncStatus
from sourcelink.services.datasource_service import DataSourceService
from sourcelink.services.schema_sync import InformationSchemaSynchronizer

from tests.conftest import ORGANIZATION, ConnectOnlyIntegration


def synchronizer_for(integration, document_store) -> InformationSchemaSynchronizer:
    service = DataSourceService(integration_factory=lambda datasource: integration, document_store=document_store)
    return InformationSchemaSynchronizer(document_store, datasource_service=service)


@pytest.mark.unit
class TestSuccessfulSync:
    """A full run over a two-schema, three-table source"""

    async def test_persists_columns_tree_and_backlink(self, make_datasource, canned_integration, document_store):
        datasource = make_datasource()

        result = await synchronizer_for(canned_integration, document_store).sync(datasource)

        assert result.status == SyncStatus.COMPLETED
        assert result.tables_synced == 3
        assert len(document_store.columns) == 3
        assert list(document_store.information_schemas) == [result.information_schema_id]

        datasource_id, organization, update = document_store.updates[0]
        assert (datasource_id, organization) == (datasource.id, ORGANIZATION)
        assert update.settings == {"information_schema_id": result.information_schema_id}
        assert update.params is None

    async def test_tree_is_stripped_and_linked_to_columns(self, make_datasource, canned_integration, document_store):
        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        stored = document_store.information_schemas[result.information_schema_id]
        tables = list(iter_tables(stored["databases"]))
        assert stored["datasource_id"] == "ds_test"
        assert all(table.columns == [] for table in tables)
        assert [table.num_of_columns for table in tables] == [2, 1, 1]
        assert [table.columns_id for table in tables] == list(document_store.columns)

        orders_columns = document_store.columns[tables[0].columns_id]
        assert [column.path for column in orders_columns] == ["shop.public.orders.id", "shop.public.orders.amount"]

    async def test_empty_source_completes_with_no_tables(self, make_datasource, canned_integration, document_store):
        canned_integration.rows = []

        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        assert result.status == SyncStatus.COMPLETED
        assert result.tables_synced == 0
        assert document_store.columns == {}


@pytest.mark.unit
class TestSkippedAndFailedDiscovery:
    """Discovery outcomes that must not write anything"""

    async def test_unsupported_driver_is_skipped(self, make_datasource, document_store):
        integration = ConnectOnlyIntegration({})

        result = await synchronizer_for(integration, document_store).sync(
            make_datasource(type=DataSourceType.MIXPANEL)
        )

        assert result.status == SyncStatus.SKIPPED
        assert result.error is None
        assert document_store.writes == 0

    async def test_backend_failure_fails_the_run(self, make_datasource, canned_integration, document_store):
        canned_integration.error = RuntimeError("warehouse suspended")

        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        assert result.status == SyncStatus.FAILED
        assert result.error == "warehouse suspended"
        assert document_store.writes == 0

    async def test_undecryptable_params_propagate(self, document_store):
        datasource = DataSourceRecord(id="ds_bad", organization=ORGANIZATION, type=DataSourceType.POSTGRES, params="x")

        with pytest.raises(DecryptionError):
            await InformationSchemaSynchronizer(document_store).sync(datasource)

        assert document_store.writes == 0


@pytest.mark.unit
class TestPartialFailures:
    """All-or-nothing persistence"""

    @pytest.mark.parametrize("failing_table", [1, 2, 3])
    async def test_columns_failure_leaves_no_columns(
        self, make_datasource, canned_integration, document_store, failing_table
    ):
        document_store.fail_columns_at = failing_table

        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        assert result.status == SyncStatus.FAILED
        assert f"table {failing_table}" in result.error
        assert document_store.columns == {}
        assert len(document_store.deleted) == failing_table - 1
        assert document_store.information_schemas == {}
        assert document_store.updates == []

    async def test_tree_failure_deletes_the_run_columns(self, make_datasource, canned_integration, document_store):
        document_store.fail_tree = True

        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        assert result.status == SyncStatus.FAILED
        assert result.information_schema_id is None
        assert document_store.columns == {}
        assert len(document_store.deleted) == 3
        assert document_store.updates == []

    async def test_failed_cleanup_still_reports_the_original_error(
        self, make_datasource, canned_integration, document_store
    ):
        document_store.fail_tree = True
        document_store.fail_delete = True

        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        assert result.status == SyncStatus.FAILED
        assert result.error.startswith("Failed to persist information schema")
        assert len(document_store.columns) == 3

    async def test_backlink_failure_reports_the_orphan(self, make_datasource, canned_integration, document_store):
        document_store.fail_backlink = True

        result = await synchronizer_for(canned_integration, document_store).sync(make_datasource())

        assert result.status == SyncStatus.FAILED
        assert result.is_orphaned
        assert result.information_schema_id in document_store.information_schemas
        assert len(document_store.columns) == 3
        assert "link" in result.error

    async def test_cancelled_run_deletes_the_columns_it_wrote(
        self, make_datasource, canned_integration, document_store
    ):
        document_store.stall_columns_at = 2
        task = asyncio.create_task(synchronizer_for(canned_integration, document_store).sync(make_datasource()))

        await document_store.stalled.wait()
        assert list(document_store.columns) == ["cols_1"]
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert document_store.columns == {}
        assert document_store.deleted == ["cols_1"]
        assert document_store.information_schemas == {}

    async def test_caller_timeout_while_writing_the_tree_deletes_the_columns(
        self, make_datasource, canned_integration, document_store
    ):
        document_store.stall_tree = True

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(
                synchronizer_for(canned_integration, document_store).sync(make_datasource()), timeout=0.2
            )

        assert document_store.columns == {}
        assert len(document_store.deleted) == 3
        assert document_store.updates == []


@pytest.mark.unit
class TestConcurrentRuns:
    """Per-data-source serialization"""

    async def test_runs_on_the_same_source_are_serialized(self, make_datasource, canned_integration, document_store):
        active = 0
        overlaps = 0
        original = canned_integration._run_query_impl

        async def tracking_run_query(sql):
            nonlocal active, overlaps
            active += 1
            overlaps = max(overlaps, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await original(sql)

        canned_integration._run_query_impl = tracking_run_query
        synchronizer = synchronizer_for(canned_integration, document_store)
        datasource = make_datasource()

        results = await asyncio.gather(synchronizer.sync(datasource), synchronizer.sync(datasource))

        assert [result.status for result in results] == [SyncStatus.COMPLETED, SyncStatus.COMPLETED]
        assert overlaps == 1
        assert len(document_store.information_schemas) == 2
        assert settings.SCHEMA_SYNC_LOCK_ENABLED

    async def test_locks_are_released_after_runs_finish(self, make_datasource, canned_integration, document_store):
        synchronizer = synchronizer_for(canned_integration, document_store)

        for index in range(20):
            result = await synchronizer.sync(make_datasource(datasource_id=f"ds_{index}"))
            assert result.status == SyncStatus.COMPLETED

        gc.collect()
        assert synchronizer.active_locks == 0
