"""ATS adapters, one per supported job board type."""
from typing import Optional

import aiohttp

from app.config import settings as default_settings, Settings
from app.models.employer import ATSType
from app.services.adapters.base import BaseAdapter
from app.services.adapters.ashby import AshbyAdapter
from app.services.adapters.greenhouse import GreenhouseAdapter


def get_adapter(
    ats_type: ATSType,
    session: aiohttp.ClientSession,
    config: Optional[Settings] = None
) -> Optional[BaseAdapter]:
    """Adapter for an ATS type, or None if the type is not supported."""
    config = config or default_settings
    if ats_type == ATSType.ASHBY:
        return AshbyAdapter(session, timeout_s=config.http_timeout_seconds)
    if ats_type == ATSType.GREENHOUSE:
        return GreenhouseAdapter(
            session,
            timeout_s=config.http_timeout_seconds,
            max_jobs=config.greenhouse_max_jobs,
        )
    return None


__all__ = ["BaseAdapter", "AshbyAdapter", "GreenhouseAdapter", "get_adapter"]
