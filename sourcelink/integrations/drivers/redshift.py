"""Amazon Redshift driver, speaking the PostgreSQL wire protocol."""

from sourcelink.integrations.drivers.postgres import PostgresIntegration
from sourcelink.integrations.types import DataSourceType


class RedshiftIntegration(PostgresIntegration):
    SOURCE_TYPE = DataSourceType.REDSHIFT
    SYSTEM_SCHEMAS = ("information_schema", "pg_catalog", "pg_internal")
    DEFAULT_PORT = 5439
