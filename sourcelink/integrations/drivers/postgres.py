"""PostgreSQL driver using asyncpg."""

import ssl
import tempfile
from pathlib import Path
from typing import Any

import asyncpg

from sourcelink.exceptions.integration import ConnectionTestFailedError, InvalidCredentialsError
from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult
from sourcelink.logging import get_logger

logger = get_logger(__name__)


class PostgresIntegration(SqlIntegration):
    """PostgreSQL driver.

    Opens one connection per call; pooling is left to the caller.
    """

    SOURCE_TYPE = DataSourceType.POSTGRES
    SENSITIVE_PARAM_KEYS = ("password", "ca_cert", "client_cert", "client_key")
    SYSTEM_SCHEMAS = ("information_schema", "pg_catalog", "pg_toast")
    DEFAULT_PORT = 5432

    def _build_ssl_context(self) -> ssl.SSLContext | str | bool:
        if not self.params.get("ssl"):
            return False
        if not self.params.get("ca_cert"):
            return "require"

        context = ssl.create_default_context(cadata=self.params["ca_cert"])
        if self.params.get("client_cert") and self.params.get("client_key"):
            # load_cert_chain only reads from disk
            with tempfile.TemporaryDirectory() as tmp:
                cert_path = Path(tmp) / "client.crt"
                key_path = Path(tmp) / "client.key"
                cert_path.write_text(self.params["client_cert"])
                key_path.write_text(self.params["client_key"])
                context.load_cert_chain(cert_path, key_path)
        return context

    def _build_connection_params(self) -> dict[str, Any]:
        """Build connection parameters for asyncpg.

        Returns:
            Keyword arguments for ``asyncpg.connect``

        """
        params: dict[str, Any] = {
            "host": self.params.get("host", "localhost"),
            "port": int(self.params.get("port") or self.DEFAULT_PORT),
            "database": self.params.get("database"),
            "user": self.params.get("user"),
            "password": self.params.get("password"),
            "ssl": self._build_ssl_context(),
        }

        if self.params.get("default_schema"):
            params["server_settings"] = {"search_path": self.params["default_schema"]}

        return params

    async def _connect(self) -> asyncpg.Connection:
        params = self._build_connection_params()
        try:
            return await asyncpg.connect(**params)
        except asyncpg.InvalidPasswordError as e:
            logger.error(
                f"{self.SOURCE_TYPE.value} authentication failed",
                extra={"host": params["host"], "port": params["port"], "user": params["user"]},
            )
            raise InvalidCredentialsError(
                f"{self.SOURCE_TYPE.value} authentication failed",
                source_type=self.source_type,
                username=params["user"],
            ) from e
        except (asyncpg.PostgresConnectionError, asyncpg.CannotConnectNowError, OSError) as e:
            logger.error(
                f"Failed to connect to {self.SOURCE_TYPE.value}",
                extra={"host": params["host"], "port": params["port"], "error": str(e)},
            )
            raise ConnectionTestFailedError(
                f"Failed to connect to {self.SOURCE_TYPE.value}: {e}",
                source_type=self.source_type,
                host=params["host"],
                port=params["port"],
            ) from e

    async def _run_query_impl(self, sql: str) -> QueryResult:
        conn = await self._connect()
        try:
            statement = await conn.prepare(sql)
            columns = [attribute.name for attribute in statement.get_attributes()]
            records = await statement.fetch()
            return build_query_result(columns, (tuple(record.values()) for record in records))
        finally:
            await conn.close()
