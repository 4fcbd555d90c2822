"""
Custom exception classes for the application.

Every error carries a machine-readable code and the HTTP status the API
answers with.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "METRICS_RUN_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422 unless a subclass says otherwise)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None,
        status_code: int = 422
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details
        )


class ConflictError(AppError):
    """Conflict with the current state of a resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# INVENTORY METRICS ERRORS
# ===================

class InvalidVelocityError(ValidationError):
    """Velocity filter is not one of the known labels (400)."""

    def __init__(self, velocity: str, valid: list[str]):
        super().__init__(
            code="INVALID_VELOCITY_FILTER",
            message=f'Invalid velocity filter "{velocity}"',
            details={"provided": velocity, "valid": valid},
            status_code=400
        )


class InvalidPercentileError(ValidationError):
    """Percentile parameter outside [0, 1] or slow above fast."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="INVALID_PERCENTILE",
            message=message,
            details=details
        )


class MetricsRunNotFoundError(NotFoundError):
    """No completed metrics run exists yet."""

    def __init__(self, run_id: str = "latest"):
        super().__init__(
            resource="Metrics run",
            identifier=run_id,
            code="METRICS_RUN_NOT_FOUND"
        )


class RecomputeInProgressError(ConflictError):
    """Another recompute already holds the single-flight lock."""

    def __init__(self):
        super().__init__(
            code="RECOMPUTE_IN_PROGRESS",
            message="An inventory metrics recompute is already running"
        )


class RecomputeTimeoutError(AppError):
    """Recompute exceeded its wall-clock budget (504)."""

    def __init__(self, timeout_seconds: float, phase: str):
        super().__init__(
            code="RECOMPUTE_TIMEOUT",
            message=f"Inventory metrics recompute exceeded {timeout_seconds}s",
            status_code=504,
            details={"timeout_seconds": timeout_seconds, "phase": phase}
        )


# ===================
# DELIVERY ERRORS
# ===================

class EmailDeliveryError(ExternalServiceError):
    """SMTP delivery failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="email",
            message=message,
            details=details
        )


class TelegramError(ExternalServiceError):
    """Telegram API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="telegram",
            message=message,
            details=details
        )
