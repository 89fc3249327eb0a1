"""Information schema snapshot models."""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from sourcelink.database.session import Base


class InformationSchema(Base):
    """One schema snapshot of a data source.

    ``databases`` holds the Database/Schema/Table tree with column lists
    stripped; each table points at its columns document through
    ``columns_id``.
    """

    __tablename__ = "information_schemas"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, doc="Snapshot identifier (inf_ prefixed)")

    organization: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    datasource_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Data source the snapshot was taken from",
    )

    databases: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    date_updated: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
    )


class InformationSchemaColumns(Base):
    """Column list of one table, written once per sync and never updated."""

    __tablename__ = "information_schema_columns"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, doc="Columns identifier (cols_ prefixed)")

    organization: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    columns: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    date_updated: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
    )
