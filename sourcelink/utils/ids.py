"""Document identifier helpers."""

from uuid import uuid4

COLUMNS_ID_PREFIX = "cols_"
INFORMATION_SCHEMA_ID_PREFIX = "inf_"
DATASOURCE_ID_PREFIX = "ds_"


def generate_id(prefix: str) -> str:
    """Return a unique, prefixed document id such as ``cols_3f2a...``."""
    return f"{prefix}{uuid4().hex}"
