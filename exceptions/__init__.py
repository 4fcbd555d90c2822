"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Inventory metrics
    InvalidVelocityError,
    InvalidPercentileError,
    MetricsRunNotFoundError,
    RecomputeInProgressError,
    RecomputeTimeoutError,

    # Delivery
    EmailDeliveryError,
    TelegramError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Inventory metrics
    "InvalidVelocityError",
    "InvalidPercentileError",
    "MetricsRunNotFoundError",
    "RecomputeInProgressError",
    "RecomputeTimeoutError",

    # Delivery
    "EmailDeliveryError",
    "TelegramError",
]
