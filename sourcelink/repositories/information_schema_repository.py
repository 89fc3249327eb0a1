"""Repositories for information schema snapshots and their column documents."""

from collections.abc import Sequence
from typing import Optional

from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sourcelink.logging import get_logger
from sourcelink.models.information_schema import InformationSchema, InformationSchemaColumns
from sourcelink.schemas.information_schema import Column, Database
from sourcelink.utils.ids import COLUMNS_ID_PREFIX, INFORMATION_SCHEMA_ID_PREFIX, generate_id

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class InformationSchemaColumnsRepository:
    """Column documents, one per table per sync."""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def create(self, organization: str, columns: Sequence[Column]) -> InformationSchemaColumns:
        with tracer.start_as_current_span("information_schema_columns_repository_create") as span:
            span.set_attribute("organization", organization)
            span.set_attribute("columns.count", len(columns))

            document = InformationSchemaColumns(
                id=generate_id(COLUMNS_ID_PREFIX),
                organization=organization,
                columns=[column.model_dump() for column in columns],
            )

            self.db_session.add(document)
            await self.db_session.flush()
            await self.db_session.refresh(document)

            span.set_attribute("columns.id", document.id)
            return document

    async def get_by_id(self, columns_id: str, organization: str) -> Optional[InformationSchemaColumns]:
        with tracer.start_as_current_span("information_schema_columns_repository_get_by_id") as span:
            span.set_attribute("columns.id", columns_id)
            stmt = select(InformationSchemaColumns).where(
                InformationSchemaColumns.id == columns_id,
                InformationSchemaColumns.organization == organization,
            )
            result = await self.db_session.execute(stmt)
            return result.scalar_one_or_none()

    async def delete_many(self, columns_ids: Sequence[str], organization: str) -> int:
        """Delete column documents by id within an organization.

        Returns:
            int: Number of documents deleted

        """
        with tracer.start_as_current_span("information_schema_columns_repository_delete_many") as span:
            span.set_attribute("organization", organization)
            span.set_attribute("columns.requested", len(columns_ids))

            if not columns_ids:
                return 0

            stmt = delete(InformationSchemaColumns).where(
                InformationSchemaColumns.id.in_(list(columns_ids)),
                InformationSchemaColumns.organization == organization,
            )
            result = await self.db_session.execute(stmt)
            deleted = result.rowcount or 0

            span.set_attribute("columns.deleted", deleted)
            logger.info("Information schema columns deleted", organization=organization, deleted=deleted)
            return deleted


class InformationSchemaRepository:
    """Information schema snapshots scoped by organization."""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def create(
        self,
        organization: str,
        datasource_id: str,
        databases: Sequence[Database],
    ) -> InformationSchema:
        """Create a snapshot from an already stripped tree.

        Args:
            organization: Owning organization
            datasource_id: Data source the tree was discovered from
            databases: Tree whose tables carry ``columns_id``

        Returns:
            InformationSchema: Created snapshot

        """
        with tracer.start_as_current_span("information_schema_repository_create") as span:
            span.set_attribute("organization", organization)
            span.set_attribute("datasource.id", datasource_id)

            document = InformationSchema(
                id=generate_id(INFORMATION_SCHEMA_ID_PREFIX),
                organization=organization,
                datasource_id=datasource_id,
                databases=[database.model_dump() for database in databases],
            )

            self.db_session.add(document)
            await self.db_session.flush()
            await self.db_session.refresh(document)

            logger.info(
                "Information schema created",
                information_schema_id=document.id,
                datasource_id=datasource_id,
                organization=organization,
                databases=len(databases),
            )

            span.set_attribute("information_schema.id", document.id)
            return document

    async def get_by_id(self, information_schema_id: str, organization: str) -> Optional[InformationSchema]:
        with tracer.start_as_current_span("information_schema_repository_get_by_id") as span:
            span.set_attribute("information_schema.id", information_schema_id)
            stmt = select(InformationSchema).where(
                InformationSchema.id == information_schema_id,
                InformationSchema.organization == organization,
            )
            result = await self.db_session.execute(stmt)
            return result.scalar_one_or_none()

    async def list_by_datasource(self, datasource_id: str, organization: str) -> list[InformationSchema]:
        """List a data source's snapshots, newest first."""
        with tracer.start_as_current_span("information_schema_repository_list_by_datasource") as span:
            span.set_attribute("datasource.id", datasource_id)
            stmt = (
                select(InformationSchema)
                .where(
                    InformationSchema.datasource_id == datasource_id,
                    InformationSchema.organization == organization,
                )
                .order_by(InformationSchema.date_created.desc())
            )
            result = await self.db_session.execute(stmt)
            return list(result.scalars().all())
