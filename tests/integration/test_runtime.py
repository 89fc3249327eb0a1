"""
Integration tests for process startup and shutdown.
"""

import pytest

from sourcelink import runtime
from sourcelink.config import settings
from sourcelink.database.session import get_session_manager
from sourcelink.services.schema_sync import InformationSchemaSynchronizer


@pytest.mark.integration
async def test_lifespan_initializes_the_document_store(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'runtime.db'}")

    async with runtime.lifespan(create_tables=True) as synchronizer:
        assert isinstance(synchronizer, InformationSchemaSynchronizer)
        health = await get_session_manager().health_check()
        assert health["status"] == "healthy"
