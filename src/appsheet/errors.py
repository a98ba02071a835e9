"""Error taxonomy for AppSheet operations.

Every error raised by this package for a failed operation is an
``AppSheetError``. HTTP failures are classified by status code; local
validation failures reuse ``ValidationError`` so callers can handle both
the same way.
"""

from typing import Any


class AppSheetError(Exception):
    """Base error carrying a machine-readable code and diagnostics."""

    def __init__(
        self,
        message: str,
        code: str = "API_ERROR",
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, status_code={self.status_code!r})"


class AuthenticationError(AppSheetError):
    def __init__(self, message: str, details: Any = None, status_code: int = 401):
        super().__init__(message, "AUTH_ERROR", status_code, details)


class ValidationError(AppSheetError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class NotFoundError(AppSheetError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "NOT_FOUND", 404, details)


class RateLimitError(AppSheetError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "RATE_LIMIT", 429, details)


class NetworkError(AppSheetError):
    """No response was received from the API."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "NETWORK_ERROR", None, details)


class ConfigurationError(AppSheetError):
    """Unknown or duplicate connection/table in a registry."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "CONFIG_ERROR", None, details)


class InspectionError(AppSheetError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "INSPECTION_ERROR", None, details)


class MockDatabaseError(Exception):
    """Structural failure in the in-memory store (missing or duplicate key)."""
