"""Outcome of one schema synchronization run."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SyncStatus(str, Enum):
    SKIPPED = "skipped"
    FAILED = "failed"
    COMPLETED = "completed"


class SyncResult(BaseModel):
    """Terminal state of a synchronization run.

    On a failed backlink ``information_schema_id`` names the orphaned
    snapshot so it can be collected out of band.
    """

    status: SyncStatus
    datasource_id: str
    information_schema_id: Optional[str] = Field(None, description="Snapshot created by this run")
    error: Optional[str] = Field(None, description="Human-readable failure message")
    tables_synced: int = Field(0, ge=0)

    @property
    def is_orphaned(self) -> bool:
        return self.status == SyncStatus.FAILED and self.information_schema_id is not None
