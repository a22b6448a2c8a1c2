"""
Greenhouse job board adapter.

Endpoint: GET {base}/{board}/jobs?content=true -> {"jobs": [...]}
"""
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from app.schemas.posting import RawPosting
from app.services.adapters.base import BaseAdapter, _name_of, _text
from app.services.extractors import (
    decode_html_entities,
    extract_locations_from_description,
    extract_salary_info,
    find_known_locations,
)

logger = logging.getLogger(__name__)

GREENHOUSE_BASE = "https://boards-api.greenhouse.io/v1/boards"


class GreenhouseAdapter(BaseAdapter):
    source_kind = "greenhouse"
    base_url = GREENHOUSE_BASE

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout_s: float = 15,
        base_url: Optional[str] = None,
        max_jobs: int = 100
    ):
        super().__init__(session, timeout_s=timeout_s, base_url=base_url)
        self.max_jobs = max_jobs

    async def fetch(self, board_identifier: str, board_url: Optional[str] = None) -> List[RawPosting]:
        url = f"{self.base_url}/{board_identifier}/jobs"
        logger.info(f"Fetching Greenhouse jobs for {board_identifier}")

        data = await self._get_json(url, params={"content": "true"})
        raw_jobs = self._jobs_array(data)

        # Bound request/DB cost per poll
        to_process = raw_jobs[:self.max_jobs]
        logger.info(
            f"[{board_identifier}] received {len(raw_jobs)} Greenhouse jobs, "
            f"processing {len(to_process)} (limit {self.max_jobs})"
        )
        return self.parse_postings(to_process)

    def parse_posting(self, raw_job: Any) -> RawPosting:
        external_id = self._require_id(raw_job)
        title = _text(raw_job.get("title"))
        single_location = _name_of(raw_job.get("location"))

        content = raw_job.get("content")
        if isinstance(content, str) and content.strip():
            description = decode_html_entities(content)
        else:
            logger.debug(f"No content for Greenhouse job {external_id}, using summary description")
            company = _text(raw_job.get("company_name")) or "the company"
            description = f"{title} at {company}. Location: {single_location or 'Remote/Various'}"

        departments = raw_job.get("departments")
        department = ""
        if isinstance(departments, list):
            department = ", ".join(n for n in (_name_of(d) for d in departments) if n)

        return RawPosting(
            external_id=external_id,
            title=title,
            description=description,
            locations=greenhouse_locations(raw_job, description),
            department=department,
            url=_text(raw_job.get("absolute_url")),
            salary=extract_salary_info(description),
        )


def greenhouse_locations(raw_job: Dict[str, Any], description: str) -> List[str]:
    """
    Locations from the offices list, else the location field. When that
    leaves nothing (or only "Remote"), description phrases and then the
    common-location lexicon are tried. Falls back to ["Remote"].
    """
    locations: List[str] = []

    offices = raw_job.get("offices")
    if isinstance(offices, list) and offices:
        locations = [name for name in (_name_of(office) for office in offices) if name]

    if not locations:
        single = _name_of(raw_job.get("location"))
        if single:
            locations = [single]

    if not locations or locations == ["Remote"]:
        extracted = extract_locations_from_description(description) or find_known_locations(description)
        if extracted:
            locations = extracted

    return locations or ["Remote"]
