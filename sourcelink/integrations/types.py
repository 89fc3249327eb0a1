"""Type definitions shared by integration drivers."""

from enum import Enum
from typing import Any, NotRequired, TypedDict


class DataSourceType(str, Enum):
    """Closed set of supported backend types."""

    ATHENA = "athena"
    BIGQUERY = "bigquery"
    CLICKHOUSE = "clickhouse"
    DATABRICKS = "databricks"
    GOOGLE_ANALYTICS = "google_analytics"
    MIXPANEL = "mixpanel"
    MSSQL = "mssql"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    PRESTO = "presto"
    REDSHIFT = "redshift"
    SNOWFLAKE = "snowflake"


class IntegrationCapability(str, Enum):
    """Optional capabilities that a driver may support."""

    RUN_QUERY = "run_query"
    TEST_QUERY = "test_query"
    INFORMATION_SCHEMA = "information_schema"


TestQueryRow = dict[str, Any]


class QueryResult(TypedDict):
    """Result of an arbitrary query execution.

    Attributes:
        columns: List of column names in order
        rows: One dict per row keyed by column name
        row_count: Number of rows returned

    """

    columns: list[str]
    rows: list[TestQueryRow]
    row_count: int


class TestQueryResult(TypedDict):
    """Result of a bounded test query.

    Attributes:
        results: Sample rows
        duration: Wall-clock execution time in milliseconds

    """

    results: list[TestQueryRow]
    duration: float


class RawInformationSchemaRow(TypedDict):
    """One column row as read from a backend's information schema.

    ``field_path`` is only present for backends exposing nested fields
    (e.g. BigQuery RECORD columns).
    """

    table_catalog: str
    table_schema: str
    table_name: str
    column_name: str
    data_type: str
    field_path: NotRequired[str]


class IntegrationMetadata(TypedDict):
    """Metadata about a driver's capabilities.

    Attributes:
        source_type: Backend type served by the driver
        capabilities: Optional capabilities the driver implements
        sensitive_param_keys: Param keys that must never leave the trust boundary

    """

    source_type: DataSourceType
    capabilities: list[IntegrationCapability]
    sensitive_param_keys: list[str]
