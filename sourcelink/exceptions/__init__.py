from sourcelink.exceptions.base import (
    ConfigurationError,
    DatabaseError,
    NotFoundError,
    SourceLinkError,
)
from sourcelink.exceptions.datasource import (
    CapabilityUnsupportedError,
    DataSourceNotFoundError,
    DecryptionError,
    UnknownSourceTypeError,
)
from sourcelink.exceptions.integration import (
    BackendExecutionError,
    ConnectionTestFailedError,
    InvalidCredentialsError,
    QueryExecutionError,
    QueryTimeoutError,
)

__all__ = [
    "SourceLinkError",
    "NotFoundError",
    "DatabaseError",
    "ConfigurationError",
    "DecryptionError",
    "UnknownSourceTypeError",
    "CapabilityUnsupportedError",
    "DataSourceNotFoundError",
    "BackendExecutionError",
    "ConnectionTestFailedError",
    "InvalidCredentialsError",
    "QueryExecutionError",
    "QueryTimeoutError",
]
