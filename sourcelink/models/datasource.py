"""Data source model for registered backends."""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sourcelink.database.session import Base


class DataSource(Base):
    """A registered backend with its encrypted connection params."""

    __tablename__ = "data_sources"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        doc="Data source identifier",
    )

    organization: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Owning organization",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        doc="Display name",
    )

    type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        doc="Data source type",
    )

    params: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Encrypted connection params",
    )

    settings: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Free-form per-backend settings, including information_schema_id",
    )

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    date_updated: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_data_sources_organization_id", "organization", "id"),)

    def __repr__(self) -> str:
        return f"<DataSource(id={self.id}, organization={self.organization}, type={self.type})>"
