"""MySQL driver using aiomysql.

Compatible with MySQL 5.7+ and MariaDB.
"""

from typing import Any

import aiomysql

from sourcelink.exceptions.integration import ConnectionTestFailedError, InvalidCredentialsError
from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult
from sourcelink.logging import get_logger

logger = get_logger(__name__)

# Access denied for user
ER_ACCESS_DENIED = 1045


class MysqlIntegration(SqlIntegration):
    SOURCE_TYPE = DataSourceType.MYSQL
    SENSITIVE_PARAM_KEYS = ("password",)
    SYSTEM_SCHEMAS = ("information_schema", "mysql", "performance_schema", "sys")

    def _build_connection_params(self) -> dict[str, Any]:
        """Build connection parameters for aiomysql.

        Returns:
            Keyword arguments for ``aiomysql.connect``

        """
        params: dict[str, Any] = {
            "host": self.params.get("host", "localhost"),
            "port": int(self.params.get("port") or 3306),
            "db": self.params.get("database"),
            "user": self.params.get("user"),
            "password": self.params.get("password") or "",
            "charset": self.params.get("charset", "utf8mb4"),
            "autocommit": True,
        }

        ssl_config = {
            "ca": self.params.get("ssl_ca"),
            "cert": self.params.get("ssl_cert"),
            "key": self.params.get("ssl_key"),
        }
        ssl_config = {k: v for k, v in ssl_config.items() if v}
        if self.params.get("ssl") and ssl_config:
            params["ssl"] = ssl_config

        return params

    async def _connect(self) -> aiomysql.Connection:
        params = self._build_connection_params()
        try:
            return await aiomysql.connect(**params)
        except aiomysql.OperationalError as e:
            error_code = e.args[0] if e.args else 0

            if error_code == ER_ACCESS_DENIED:
                logger.error(
                    "MySQL authentication failed",
                    extra={"host": params["host"], "port": params["port"], "user": params["user"]},
                )
                raise InvalidCredentialsError(
                    "MySQL authentication failed",
                    source_type=self.source_type,
                    username=params["user"],
                ) from e

            logger.error(
                "Failed to connect to MySQL",
                extra={"host": params["host"], "port": params["port"], "error": str(e), "error_code": error_code},
            )
            raise ConnectionTestFailedError(
                f"Failed to connect to MySQL: {e}",
                source_type=self.source_type,
                host=params["host"],
                port=params["port"],
            ) from e

    async def _run_query_impl(self, sql: str) -> QueryResult:
        conn = await self._connect()
        try:
            async with conn.cursor() as cursor:
                await cursor.execute(sql)
                records = await cursor.fetchall()
                columns = [desc[0] for desc in cursor.description] if cursor.description else []
                return build_query_result(columns, records)
        finally:
            conn.close()

    def _information_schema_query(self, scope: str | None) -> str:
        database = str(self.params.get("database") or "").replace("'", "''")
        return (
            "SELECT table_catalog, table_schema, table_name, column_name, data_type\n"
            "FROM information_schema.columns\n"
            f"WHERE table_schema = '{database}'\n"
            "ORDER BY table_name, ordinal_position"
        )
