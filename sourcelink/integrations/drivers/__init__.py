"""Backend drivers, one module per data source type."""

from sourcelink.integrations.drivers.athena import AthenaIntegration
from sourcelink.integrations.drivers.bigquery import BigQueryIntegration
from sourcelink.integrations.drivers.clickhouse import ClickHouseIntegration
from sourcelink.integrations.drivers.databricks import DatabricksIntegration
from sourcelink.integrations.drivers.google_analytics import GoogleAnalyticsIntegration
from sourcelink.integrations.drivers.mixpanel import MixpanelIntegration
from sourcelink.integrations.drivers.mssql import MssqlIntegration
from sourcelink.integrations.drivers.mysql import MysqlIntegration
from sourcelink.integrations.drivers.postgres import PostgresIntegration
from sourcelink.integrations.drivers.presto import PrestoIntegration
from sourcelink.integrations.drivers.redshift import RedshiftIntegration
from sourcelink.integrations.drivers.snowflake import SnowflakeIntegration

__all__ = [
    "AthenaIntegration",
    "BigQueryIntegration",
    "ClickHouseIntegration",
    "DatabricksIntegration",
    "GoogleAnalyticsIntegration",
    "MixpanelIntegration",
    "MssqlIntegration",
    "MysqlIntegration",
    "PostgresIntegration",
    "PrestoIntegration",
    "RedshiftIntegration",
    "SnowflakeIntegration",
]
