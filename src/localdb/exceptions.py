"""
localdb - Custom Exceptions.

Raised failures only. Cardinality violations on the read path are reported
through APIResponse.error instead (see localdb.schemas.QueryError).
"""

from typing import Any


class LocalDBException(Exception):
    """Base exception for localdb."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidFilterException(LocalDBException):
    """Raised when an or() filter expression cannot be parsed."""

    def __init__(self, message: str = "Invalid filter expression.", details: dict[str, Any] | None = None):
        super().__init__(
            code="INVALID_FILTER",
            message=message,
            details=details,
        )


class MissingFilterException(LocalDBException):
    """Raised when update() or delete() is evaluated without any filter."""

    def __init__(self, operation: str, table: str):
        super().__init__(
            code="MISSING_FILTER",
            message=f"{operation} on '{table}' requires at least one filter",
            details={"operation": operation, "table": table},
        )


class ListenerError(LocalDBException):
    """Raised by notify() when listener isolation is disabled and a listener fails."""

    def __init__(self, channel: str, error: Exception):
        super().__init__(
            code="LISTENER_ERROR",
            message=f"Listener on '{channel}' failed: {error}",
            details={"channel": channel, "error_type": type(error).__name__},
        )
        self.error = error
