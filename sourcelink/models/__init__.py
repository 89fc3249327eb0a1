"""Document store models."""

from sourcelink.models.datasource import DataSource
from sourcelink.models.information_schema import InformationSchema, InformationSchemaColumns

__all__ = [
    "DataSource",
    "InformationSchema",
    "InformationSchemaColumns",
]
