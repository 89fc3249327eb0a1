"""Canonical information schema tree and its persisted documents."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Column(BaseModel):
    """A single column, or a nested field of a semi-structured column."""

    model_config = ConfigDict(frozen=True)

    column_name: str = Field(..., description="Column name")
    data_type: str = Field(..., description="Backend-native data type")
    path: str = Field(..., description="Fully qualified path, including nested field path")


class Table(BaseModel):
    """A table node. ``columns_id`` is set only once its columns are persisted."""

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(..., description="Table name")
    path: str = Field(..., description="Fully qualified table path")
    columns: list[Column] = Field(default_factory=list, description="Columns in discovery order")
    columns_id: Optional[str] = Field(None, description="Id of the persisted columns document")
    num_of_columns: int = Field(0, ge=0, description="Number of columns on the table")


class Schema(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_name: str = Field(..., description="Schema (dataset) name")
    path: str = Field(..., description="Fully qualified schema path")
    tables: list[Table] = Field(default_factory=list)


class Database(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_name: str = Field(..., description="Database (catalog / project) name")
    path: str = Field(..., description="Database path")
    schemas: list[Schema] = Field(default_factory=list)


class InformationSchemaColumnsDocument(BaseModel):
    """Organization-scoped column list for one table, created once per sync."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    organization: str
    columns: list[Column]
    date_created: datetime
    date_updated: datetime


class InformationSchemaDocument(BaseModel):
    """Persisted snapshot of a data source's normalized schema tree."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    organization: str
    datasource_id: str
    databases: list[Database]
    date_created: datetime
    date_updated: datetime
