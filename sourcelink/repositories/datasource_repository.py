"""Repository for data source records with organization scoping."""

from datetime import datetime, timezone
from typing import Any, Optional

from opentelemetry import trace
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from sourcelink.exceptions.datasource import DataSourceNotFoundError
from sourcelink.integrations.types import DataSourceType
from sourcelink.logging import get_logger
from sourcelink.models.datasource import DataSource
from sourcelink.schemas.datasource import DataSourceUpdate
from sourcelink.utils.ids import DATASOURCE_ID_PREFIX, generate_id

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class DataSourceRepository:
    """Repository for data source database operations with organization isolation."""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def create(
        self,
        organization: str,
        type: DataSourceType,
        params: str,
        name: str = "",
        settings: Optional[dict[str, Any]] = None,
        datasource_id: Optional[str] = None,
    ) -> DataSource:
        """Create a data source.

        Args:
            organization: Owning organization
            type: Data source type
            params: Encrypted connection params
            name: Display name
            settings: Initial settings
            datasource_id: Explicit id, generated when omitted

        Returns:
            DataSource: Created data source

        """
        with tracer.start_as_current_span("datasource_repository_create") as span:
            span.set_attribute("organization", organization)
            span.set_attribute("datasource.type", DataSourceType(type).value)

            datasource = DataSource(
                id=datasource_id or generate_id(DATASOURCE_ID_PREFIX),
                organization=organization,
                name=name,
                type=DataSourceType(type).value,
                params=params,
                settings=settings or {},
            )

            self.db_session.add(datasource)
            await self.db_session.flush()
            await self.db_session.refresh(datasource)

            logger.info(
                "Data source created",
                datasource_id=datasource.id,
                organization=organization,
                type=datasource.type,
            )

            span.set_attribute("datasource.id", datasource.id)
            return datasource

    async def get_by_id(self, datasource_id: str, organization: str) -> Optional[DataSource]:
        with tracer.start_as_current_span("datasource_repository_get_by_id") as span:
            span.set_attribute("datasource.id", datasource_id)
            span.set_attribute("organization", organization)

            stmt = select(DataSource).where(
                DataSource.id == datasource_id,
                DataSource.organization == organization,
            )

            result = await self.db_session.execute(stmt)
            datasource = result.scalar_one_or_none()

            span.set_attribute("found", datasource is not None)
            return datasource

    async def get_by_id_or_raise(self, datasource_id: str, organization: str) -> DataSource:
        """Get a data source or raise.

        Raises:
            DataSourceNotFoundError: If the data source does not exist in the organization

        """
        datasource = await self.get_by_id(datasource_id, organization)
        if not datasource:
            raise DataSourceNotFoundError(datasource_id=datasource_id, organization=organization)
        return datasource

    async def list_by_organization(
        self,
        organization: str,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[DataSource], int]:
        """List an organization's data sources, newest first.

        Returns:
            tuple[list[DataSource], int]: Page of data sources and total count

        """
        with tracer.start_as_current_span("datasource_repository_list_by_organization") as span:
            span.set_attribute("organization", organization)
            span.set_attribute("skip", skip)
            span.set_attribute("limit", limit)

            stmt = select(DataSource).where(DataSource.organization == organization)

            count_stmt = select(func.count()).select_from(stmt.subquery())
            total = (await self.db_session.execute(count_stmt)).scalar_one()

            stmt = stmt.order_by(DataSource.date_created.desc()).offset(skip).limit(limit)
            result = await self.db_session.execute(stmt)
            datasources = list(result.scalars().all())

            span.set_attribute("total_count", total)
            return datasources, total

    async def update(self, datasource_id: str, organization: str, update: DataSourceUpdate) -> DataSource:
        """Apply a partial update.

        ``update.settings`` is merged key by key into the stored settings.

        Raises:
            DataSourceNotFoundError: If the data source does not exist in the organization

        """
        with tracer.start_as_current_span("datasource_repository_update") as span:
            span.set_attribute("datasource.id", datasource_id)
            span.set_attribute("organization", organization)

            datasource = await self.get_by_id_or_raise(datasource_id, organization)

            if update.name is not None:
                datasource.name = update.name

            if update.params is not None:
                datasource.params = update.params
                span.set_attribute("updated_params", True)

            if update.settings is not None:
                merged = dict(datasource.settings or {})
                merged.update(update.settings)
                datasource.settings = merged
                # Mark the JSON column as modified so SQLAlchemy tracks the change
                flag_modified(datasource, "settings")
                span.set_attribute("updated_settings", ",".join(sorted(update.settings)))

            datasource.date_updated = datetime.now(timezone.utc)

            await self.db_session.flush()
            await self.db_session.refresh(datasource)

            logger.info(
                "Data source updated",
                datasource_id=datasource_id,
                organization=organization,
                settings_keys=sorted(update.settings or {}),
                params_replaced=update.params is not None,
            )
            return datasource

    async def delete(self, datasource_id: str, organization: str) -> bool:
        """Delete a data source.

        Raises:
            DataSourceNotFoundError: If the data source does not exist in the organization

        """
        with tracer.start_as_current_span("datasource_repository_delete") as span:
            span.set_attribute("datasource.id", datasource_id)
            span.set_attribute("organization", organization)

            datasource = await self.get_by_id_or_raise(datasource_id, organization)
            await self.db_session.delete(datasource)
            await self.db_session.flush()

            logger.info("Data source deleted", datasource_id=datasource_id, organization=organization)
            return True
