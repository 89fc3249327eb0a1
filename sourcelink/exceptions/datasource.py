"""Data-source level exceptions raised outside of backend drivers."""

from typing import Optional

from sourcelink.exceptions.base import NotFoundError, SourceLinkError


class DecryptionError(SourceLinkError):
    """Raised when stored connection params cannot be decrypted.

    Either the ciphertext is malformed or it was produced with a different
    encryption key. Fatal: surfaced to the caller as-is.
    """

    def __init__(self, message: str = "Unable to decrypt data source params", **kwargs) -> None:
        super().__init__(message, **kwargs)


class UnknownSourceTypeError(SourceLinkError):
    """Raised when a data source type has no registered driver.

    Source types are validated upstream, so this indicates a programming
    error rather than bad user input.
    """

    def __init__(self, source_type: str, available_types: Optional[list[str]] = None) -> None:
        available = ", ".join(available_types) if available_types else "none"
        super().__init__(
            f"Unknown data source type: {source_type}. Available types: {available}",
            details={"source_type": source_type},
        )
        self.source_type = source_type
        self.available_types = available_types or []


class CapabilityUnsupportedError(SourceLinkError):
    """Raised when a driver does not implement a requested capability.

    Recoverable: callers should degrade gracefully (hide the feature,
    return an empty result).
    """

    def __init__(self, capability: str, source_type: Optional[str] = None, message: Optional[str] = None) -> None:
        details = {"capability": capability}
        if source_type:
            details["source_type"] = source_type
        super().__init__(
            message or f"Data source type '{source_type}' does not support {capability}",
            details=details,
        )
        self.capability = capability
        self.source_type = source_type


class DataSourceNotFoundError(NotFoundError):
    """Raised when a data source is not found within an organization."""

    def __init__(self, datasource_id: str, organization: Optional[str] = None, **kwargs) -> None:
        details = kwargs.pop("details", {})
        if organization:
            details["organization"] = organization
        super().__init__(
            message="Data source not found",
            resource_type="datasource",
            resource_id=datasource_id,
            details=details,
            **kwargs,
        )
