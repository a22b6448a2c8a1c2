"""
API error telemetry.
Records upstream and persistence failures in the api_errors table.
"""
import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app import database
from app.models.api_error import ApiError

logger = logging.getLogger(__name__)


async def log_api_error(
    session_factory: Optional[Callable[[], AsyncSession]] = None,
    *,
    source_kind: str,
    message: str,
    employer_id: Optional[UUID] = None,
    employer_name: Optional[str] = None
) -> bool:
    """
    Insert an ApiError row in its own session.

    Never raises: a failure here is logged and reported as False so the
    caller's cycle carries on.
    """
    factory = session_factory or database.AsyncSessionLocal
    try:
        async with factory() as db:
            db.add(ApiError(
                employer_id=employer_id,
                employer_name=employer_name,
                source_kind=source_kind,
                error_message=message,
                created_at=datetime.utcnow(),
            ))
            await db.commit()
        return True
    except Exception:
        logger.exception(f"Failed to record {source_kind} error for {employer_name or employer_id}")
        return False
