"""Custom exception hierarchy for the DRE reporting engine.

Every error the engine raises on purpose derives from ``DREException`` so the
API layer can translate it with a single handler.

Error codes follow pattern: [CATEGORY][NUMBER]
- RPT: Report/period errors (500-599)
- SYS: System errors (400-499)

Absence of manual adjustment data is NOT an error: it resolves to zero inside
the adjustment resolver and never reaches this module.
"""

from __future__ import annotations

from typing import Any


class DREException(Exception):
    """Base exception for all reporting engine errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a user-facing message and metadata.

        Args:
            message: Human readable error message
            code: Unique error code (e.g., "RPT500")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# REPORT ERRORS (RPT500-599)
# ============================================================================

class ReportError(DREException):
    """Base class for report/period errors."""
    pass


class PeriodValidationError(ReportError):
    """Malformed or contradictory period parameters.

    No statement is computed when this is raised.
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
            details["value"] = value
        super().__init__(
            message=message,
            code="RPT500",
            status_code=400,
            details=details,
        )


# Shorter name used across the services
ValidationError = PeriodValidationError


# ============================================================================
# SYSTEM ERRORS (SYS400-499)
# ============================================================================

class SystemError(DREException):
    """Base class for system/infrastructure errors."""
    pass


class DataUnavailableError(SystemError):
    """Ledger or adjustment store could not be read.

    Aborts the whole computation; partial statements are never returned.
    """

    def __init__(self, store: str, reason: str | None = None):
        message = f"{store} store is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="SYS400",
            status_code=503,
            details={"store": store},
        )


class ConfigurationError(SystemError):
    """Required configuration missing or invalid."""

    def __init__(self, setting: str):
        super().__init__(
            message=f"Configuration error: {setting} is not set correctly",
            code="SYS401",
            status_code=500,
            details={"setting": setting},
        )
