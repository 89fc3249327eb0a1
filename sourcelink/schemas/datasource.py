"""Data source record and partial-update schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from sourcelink.integrations.types import DataSourceType


class DataSourceSettings(BaseModel):
    """Free-form per-backend tuning; known keys are declared explicitly."""

    model_config = ConfigDict(extra="allow")

    information_schema_id: Optional[str] = Field(
        None,
        description="Id of the latest information schema snapshot",
    )


class DataSourceRecord(BaseModel):
    """A registered data source. ``params`` is always ciphertext."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    organization: str
    name: str = ""
    type: DataSourceType
    params: str = Field(..., description="Encrypted connection params", repr=False)
    settings: DataSourceSettings = Field(default_factory=DataSourceSettings)
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None


class DataSourceUpdate(BaseModel):
    """Partial update of a data source.

    ``settings`` is merged key by key into the stored settings, never
    replacing the whole document. ``params`` replaces the stored ciphertext.
    """

    name: Optional[str] = None
    params: Optional[str] = Field(None, repr=False)
    settings: Optional[dict[str, Any]] = None
