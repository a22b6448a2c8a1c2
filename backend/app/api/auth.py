"""
Shared-secret authentication for the trigger and admin endpoints.

Callers pass the secret as a query parameter (?secret=...), which lets
cron services and webhooks hit the endpoints without custom headers.
"""
import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Query

from app.config import settings
from app.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def check_secret(provided: Optional[str]) -> None:
    """
    Raises:
        ConfigurationError: No API secret is configured
        HTTPException 401: Secret missing or wrong
    """
    expected = settings.api_secret
    if not expected:
        raise ConfigurationError("API_SECRET is not configured")

    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Rejected request with invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


async def require_secret(secret: Optional[str] = Query(None)) -> None:
    """
    Dependency guarding an endpoint with the shared secret.

    Raises:
        HTTPException 503: Server has no secret configured
        HTTPException 401: Secret missing or wrong
    """
    try:
        check_secret(secret)
    except ConfigurationError as e:
        logger.error(f"Refusing request: {e}")
        raise HTTPException(status_code=503, detail="Server secret is not configured")
