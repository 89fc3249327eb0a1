"""
Pytest configuration and shared fixtures for sourcelink tests.

Provides an in-memory document store, canned drivers and helpers for
building encrypted data source records.
"""
import os

os.environ.setdefault("ENCRYPTION_KEY", "sourcelink-test-passphrase")
os.environ.setdefault("ENVIRONMENT", "testing")

import asyncio
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from sourcelink.database.session import DatabaseSessionManager
from sourcelink.integrations.base import SourceIntegration, SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult
from sourcelink.repositories.document_store import SqlAlchemyDocumentStore
from sourcelink.schemas.datasource import DataSourceRecord, DataSourceSettings, DataSourceUpdate
from sourcelink.schemas.information_schema import Column, Database, InformationSchemaColumnsDocument
from sourcelink.security.credentials import encrypt_params
from sourcelink.utils.ids import COLUMNS_ID_PREFIX, INFORMATION_SCHEMA_ID_PREFIX

ORGANIZATION = "org_test"

RAW_POSTGRES_ROWS = [
    {"table_catalog": "shop", "table_schema": "public", "table_name": "orders", "column_name": "id", "data_type": "integer"},
    {"table_catalog": "shop", "table_schema": "public", "table_name": "orders", "column_name": "amount", "data_type": "numeric"},
    {"table_catalog": "shop", "table_schema": "public", "table_name": "users", "column_name": "id", "data_type": "integer"},
    {"table_catalog": "shop", "table_schema": "analytics", "table_name": "events", "column_name": "name", "data_type": "text"},
]


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests against a real SQLAlchemy document store")


# =======================
# FAKE DRIVERS
# =======================

class CannedSqlIntegration(SqlIntegration):
    """SQL driver answering every query from canned rows, recording what it ran."""

    SOURCE_TYPE = DataSourceType.POSTGRES
    SENSITIVE_PARAM_KEYS = ("password",)

    def __init__(self, params: dict[str, Any], settings: Optional[dict[str, Any]] = None) -> None:
        super().__init__(params, settings)
        self.rows: list[dict[str, Any]] = list(RAW_POSTGRES_ROWS)
        self.error: Optional[Exception] = None
        self.executed: list[str] = []

    async def _run_query_impl(self, sql: str) -> QueryResult:
        self.executed.append(sql)
        if self.error is not None:
            raise self.error
        columns = list(self.rows[0]) if self.rows else []
        return build_query_result(columns, ([row[column] for column in columns] for row in self.rows))


class ConnectOnlyIntegration(SourceIntegration):
    """Driver with no optional capabilities."""

    SOURCE_TYPE = DataSourceType.MIXPANEL
    SENSITIVE_PARAM_KEYS = ("secret",)

    def __init__(self, params: dict[str, Any], settings: Optional[dict[str, Any]] = None) -> None:
        super().__init__(params, settings)
        self.connected = False

    async def _test_connection_impl(self) -> None:
        self.connected = True


# =======================
# FAKE DOCUMENT STORE
# =======================

class FakeDocumentStore:
    """In-memory DocumentStore with switchable failures at each write."""

    def __init__(self) -> None:
        self.columns: dict[str, list[Column]] = {}
        self.information_schemas: dict[str, dict[str, Any]] = {}
        self.updates: list[tuple[str, str, DataSourceUpdate]] = []
        self.deleted: list[str] = []
        self.fail_columns_at: Optional[int] = None
        self.fail_tree = False
        self.fail_backlink = False
        self.fail_delete = False
        self.stall_columns_at: Optional[int] = None
        self.stall_tree = False
        self.stalled = asyncio.Event()
        self._columns_calls = 0

    @property
    def writes(self) -> int:
        return len(self.columns) + len(self.information_schemas) + len(self.updates)

    async def create_information_schema_columns(
        self,
        columns: Sequence[Column],
        organization: str,
    ) -> InformationSchemaColumnsDocument:
        self._columns_calls += 1
        if self.fail_columns_at == self._columns_calls:
            raise RuntimeError("columns write rejected")
        if self.stall_columns_at == self._columns_calls:
            await self._stall()

        now = datetime.now(timezone.utc)
        document = InformationSchemaColumnsDocument(
            id=f"{COLUMNS_ID_PREFIX}{self._columns_calls}",
            organization=organization,
            columns=list(columns),
            date_created=now,
            date_updated=now,
        )
        self.columns[document.id] = list(columns)
        return document

    async def _stall(self) -> None:
        self.stalled.set()
        await asyncio.Event().wait()

    async def delete_information_schema_columns(self, columns_ids: Sequence[str], organization: str) -> int:
        if self.fail_delete:
            raise RuntimeError("columns delete rejected")
        deleted = 0
        for columns_id in columns_ids:
            if self.columns.pop(columns_id, None) is not None:
                self.deleted.append(columns_id)
                deleted += 1
        return deleted

    async def create_information_schema(
        self,
        databases: Sequence[Database],
        organization: str,
        datasource_id: str,
    ) -> str:
        if self.fail_tree:
            raise RuntimeError("tree write rejected")
        if self.stall_tree:
            await self._stall()

        information_schema_id = f"{INFORMATION_SCHEMA_ID_PREFIX}{len(self.information_schemas) + 1}"
        self.information_schemas[information_schema_id] = {
            "organization": organization,
            "datasource_id": datasource_id,
            "databases": list(databases),
        }
        return information_schema_id

    async def update_data_source(self, datasource_id: str, organization: str, update: DataSourceUpdate) -> None:
        if self.fail_backlink:
            raise RuntimeError("data source update rejected")
        self.updates.append((datasource_id, organization, update))


# =======================
# FIXTURES
# =======================

@pytest.fixture
def make_datasource():
    """Build a DataSourceRecord with freshly encrypted params"""

    def _make(
        type: DataSourceType = DataSourceType.POSTGRES,
        params: Optional[dict[str, Any]] = None,
        datasource_id: str = "ds_test",
        organization: str = ORGANIZATION,
    ) -> DataSourceRecord:
        return DataSourceRecord(
            id=datasource_id,
            organization=organization,
            name="Test source",
            type=type,
            params=encrypt_params(params if params is not None else {"host": "db", "password": "hunter2"}),
            settings=DataSourceSettings(),
        )

    return _make


@pytest.fixture
def canned_integration() -> CannedSqlIntegration:
    integration = CannedSqlIntegration({"host": "db", "password": "hunter2"})
    integration.organization = ORGANIZATION
    integration.datasource = "ds_test"
    return integration


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
async def session_manager(tmp_path):
    """SQLAlchemy session manager over a throwaway SQLite file"""
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await manager.initialize()
    await manager.create_tables()

    yield manager

    await manager.close()


@pytest.fixture
def sqlalchemy_store(session_manager) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(session_manager)
