"""Exceptions raised by backend drivers while talking to a data source."""

from typing import Any

from sourcelink.exceptions.base import SourceLinkError


class BackendExecutionError(SourceLinkError):
    """Base exception for any failure inside a backend driver."""

    def __init__(
        self,
        message: str,
        source_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize backend execution error.

        Args:
            message: Human-readable error message
            source_type: The data source type that failed
            details: Additional error context

        """
        super().__init__(message, details=details)
        self.source_type = source_type


class ConnectionTestFailedError(BackendExecutionError):
    """Raised when the backend cannot be reached or the handshake fails."""

    def __init__(
        self,
        message: str,
        source_type: str | None = None,
        host: str | None = None,
        port: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, source_type=source_type, details=details)
        self.host = host
        self.port = port


class InvalidCredentialsError(BackendExecutionError):
    """Raised when the backend rejects the provided credentials."""

    def __init__(
        self,
        message: str = "Authentication failed with provided credentials",
        source_type: str | None = None,
        username: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, source_type=source_type, details=details)
        self.username = username


class QueryExecutionError(BackendExecutionError):
    """Raised when a query fails on the backend.

    This could be due to syntax errors, permission issues,
    or runtime errors in the query.
    """

    def __init__(
        self,
        message: str,
        source_type: str | None = None,
        query: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize query execution error.

        Args:
            message: Human-readable error message
            source_type: The data source type that failed
            query: The query that failed (may be truncated)
            details: Additional error context

        """
        super().__init__(message, source_type=source_type, details=details)
        self.query = query


class QueryTimeoutError(BackendExecutionError):
    """Raised when a caller-supplied timeout elapses during a backend call."""

    def __init__(
        self,
        message: str,
        source_type: str | None = None,
        query: str | None = None,
        timeout_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, source_type=source_type, details=details)
        self.query = query
        self.timeout_seconds = timeout_seconds
