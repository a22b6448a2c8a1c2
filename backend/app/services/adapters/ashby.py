"""
Ashby job board adapter.

Endpoint: GET {base}/{board}?includeCompensation=true -> {"jobs": [...]}
"""
import logging
from typing import Any, Dict, List, Optional

from app.schemas.posting import RawPosting, SalaryInfo
from app.services.adapters.base import BaseAdapter, _name_of, _salary_amount, _text
from app.services.extractors import extract_locations_from_description, map_salary_interval

logger = logging.getLogger(__name__)

ASHBY_BASE = "https://api.ashbyhq.com/posting-api/job-board"


class AshbyAdapter(BaseAdapter):
    source_kind = "ashby"
    base_url = ASHBY_BASE

    async def fetch(self, board_identifier: str, board_url: Optional[str] = None) -> List[RawPosting]:
        url = f"{self.base_url}/{board_identifier}"
        logger.info(f"Fetching Ashby jobs for {board_identifier} ({board_url or 'no board url'})")

        data = await self._get_json(url, params={"includeCompensation": "true"})
        raw_jobs = self._jobs_array(data)

        # Unlisted postings are not public
        listed = [job for job in raw_jobs if isinstance(job, dict) and job.get("isListed") is True]
        logger.info(
            f"[{board_identifier}] received {len(raw_jobs)} Ashby jobs, "
            f"{len(listed)} publicly listed"
        )
        return self.parse_postings(listed)

    def parse_posting(self, raw_job: Any) -> RawPosting:
        external_id = self._require_id(raw_job)
        description = (
            _text(raw_job.get("descriptionPlain"))
            or _text(raw_job.get("description"))
            or _text(raw_job.get("descriptionHtml"))
        )

        return RawPosting(
            external_id=external_id,
            title=_text(raw_job.get("title")),
            description=description,
            locations=ashby_locations(raw_job, description),
            department=_name_of(raw_job.get("department")),
            url=(
                _text(raw_job.get("applyUrl"))
                or _text(raw_job.get("applicationUrl"))
                or _text(raw_job.get("jobUrl"))
                or _text(raw_job.get("hostedUrl"))
            ),
            salary=ashby_salary(raw_job.get("compensation")),
        )


def ashby_salary(compensation: Any) -> SalaryInfo:
    """Salary from the "Salary" entry of the compensation summary components."""
    if not isinstance(compensation, dict):
        return SalaryInfo()

    components = compensation.get("summaryComponents")
    if not isinstance(components, list):
        return SalaryInfo()

    for component in components:
        if not isinstance(component, dict):
            continue
        if _text(component.get("compensationType")).lower() != "salary":
            continue
        return SalaryInfo(
            min=_salary_amount(component.get("minValue")),
            max=_salary_amount(component.get("maxValue")),
            currency=_text(component.get("currencyCode")) or None,
            interval=map_salary_interval(_text(component.get("interval"))),
        )

    return SalaryInfo()


def _postal_address(address: Any) -> str:
    if not isinstance(address, dict):
        return ""
    postal = address.get("postalAddress", address)
    if not isinstance(postal, dict):
        return ""
    parts = [
        _text(postal.get("addressLocality")),
        _text(postal.get("addressRegion")),
        _text(postal.get("addressCountry")),
    ]
    return ", ".join(p for p in parts if p)


def _unique(values: List[str]) -> List[str]:
    seen = set()
    out = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out


def ashby_locations(raw_job: Dict[str, Any], description: str) -> List[str]:
    """
    Location list, first usable source wins:
    1. primary location + secondaryLocations
    2. a locations array
    3. a single location (string or object)
    4. the postal address
    5. phrases in the description
    Falls back to ["Remote"].
    """
    primary = _name_of(raw_job.get("location"))

    secondary = raw_job.get("secondaryLocations")
    if isinstance(secondary, list) and secondary:
        names = [primary] + [
            _name_of(loc) or _postal_address(loc.get("address") if isinstance(loc, dict) else None)
            for loc in secondary
        ]
        locations = _unique(names)
        if locations:
            return locations

    array = raw_job.get("locations")
    if isinstance(array, list):
        locations = _unique([_name_of(loc) for loc in array])
        if locations:
            return locations

    if primary:
        return [primary]

    address = _postal_address(raw_job.get("address"))
    if address:
        return [address]

    extracted = extract_locations_from_description(description)
    if extracted:
        return extracted

    return ["Remote"]
