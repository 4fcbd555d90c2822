"""
Shared route dependencies.
"""

import secrets
from typing import Optional

from fastapi import Security
from fastapi.security import APIKeyHeader
import structlog

from config import settings
from exceptions import AppError

logger = structlog.get_logger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class UnauthorizedError(AppError):
    """Missing or wrong API key (401)."""

    def __init__(self):
        super().__init__(
            code="UNAUTHORIZED",
            message="A valid X-API-Key header is required",
            status_code=401
        )


def require_api_key(api_key: Optional[str] = Security(api_key_header)) -> None:
    """
    Guard admin endpoints with the configured API key.

    Open when API_KEY is not set (local development).

    Raises:
        UnauthorizedError: If the header is missing or does not match
    """
    if not settings.api_key:
        return

    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        logger.warning("api_key_rejected", provided=bool(api_key))
        raise UnauthorizedError()
