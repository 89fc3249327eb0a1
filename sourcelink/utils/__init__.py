from sourcelink.utils.ids import (
    COLUMNS_ID_PREFIX,
    DATASOURCE_ID_PREFIX,
    INFORMATION_SCHEMA_ID_PREFIX,
    generate_id,
)

__all__ = [
    "COLUMNS_ID_PREFIX",
    "DATASOURCE_ID_PREFIX",
    "INFORMATION_SCHEMA_ID_PREFIX",
    "generate_id",
]
