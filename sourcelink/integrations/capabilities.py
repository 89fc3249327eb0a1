"""Optional driver capabilities.

Every driver implements the mandatory :class:`~sourcelink.integrations.base.SourceIntegration`
surface. The protocols below describe the optional capabilities; callers query
them with ``isinstance`` and must treat a missing capability as a valid,
non-error outcome.
"""

from typing import Protocol, runtime_checkable

from sourcelink.integrations.types import (
    DataSourceType,
    QueryResult,
    RawInformationSchemaRow,
    TestQueryResult,
)
from sourcelink.schemas.information_schema import Database


@runtime_checkable
class SupportsQuery(Protocol):
    """Driver can run an arbitrary query in the backend's native language."""

    async def run_query(self, query: str, timeout: float | None = None) -> QueryResult: ...


@runtime_checkable
class SupportsTestQuery(Protocol):
    """Driver can bound a caller's raw query and execute it."""

    def get_test_query(self, query: str) -> str: ...

    async def run_test_query(self, sql: str, timeout: float | None = None) -> TestQueryResult: ...


@runtime_checkable
class SupportsInformationSchema(Protocol):
    """Driver can discover and normalize the backend's schema metadata."""

    async def get_information_schema(
        self,
        scope: str | None = None,
        timeout: float | None = None,
    ) -> list[RawInformationSchemaRow]: ...

    def format_information_schema(
        self,
        raw: list[RawInformationSchemaRow],
        source_type: DataSourceType,
    ) -> list[Database]: ...
