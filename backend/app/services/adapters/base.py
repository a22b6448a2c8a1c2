"""
Shared fetch/parse plumbing for ATS adapters.

An adapter turns one employer's job board into a list of RawPosting.
HTTP failures, timeouts and unreadable payloads raise UpstreamError; a
posting without an id is logged and skipped.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from app.exceptions import MalformedPostingError, UpstreamError
from app.schemas.posting import RawPosting

logger = logging.getLogger(__name__)

USER_AGENT = "JobTracker/1.0 (job board polling)"
BODY_PREVIEW_CHARS = 500


class BaseAdapter:
    """Base class for ATS adapters."""

    source_kind: str = "base"
    base_url: str = ""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout_s: float = 15,
        base_url: Optional[str] = None
    ):
        self.session = session
        self.timeout_s = timeout_s
        if base_url:
            self.base_url = base_url.rstrip("/")

    async def fetch(self, board_identifier: str, board_url: Optional[str] = None) -> List[RawPosting]:
        """Fetch and normalize all postings on a board."""
        raise NotImplementedError

    async def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        GET a JSON object from the ATS.

        Raises:
            UpstreamError: non-2xx status, timeout, connection failure, or a
                body that is not a JSON object
        """
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        timeout = aiohttp.ClientTimeout(total=self.timeout_s)

        try:
            async with self.session.get(url, params=params, headers=headers, timeout=timeout) as resp:
                body_text = await resp.text(errors="ignore")
                logger.debug(
                    f"[{self.source_kind}] GET {url} status={resp.status} "
                    f"content_type={resp.headers.get('Content-Type')}"
                )

                if resp.status < 200 or resp.status >= 300:
                    raise UpstreamError(
                        self.source_kind,
                        resp.reason or "request failed",
                        status=resp.status,
                        body=body_text[:BODY_PREVIEW_CHARS],
                    )

                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise UpstreamError(
                        self.source_kind,
                        f"invalid JSON payload: {e}",
                        status=resp.status,
                        body=body_text[:BODY_PREVIEW_CHARS],
                    ) from e
        except asyncio.TimeoutError as e:
            raise UpstreamError(self.source_kind, f"request timed out after {self.timeout_s}s") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(self.source_kind, f"{type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamError(
                self.source_kind,
                f"malformed payload: expected an object, got {type(data).__name__}",
                status=200,
            )
        return data

    @staticmethod
    def _jobs_array(data: Dict[str, Any]) -> List[Any]:
        """The payload's "jobs" list; missing or non-list means no postings."""
        jobs = data.get("jobs")
        return jobs if isinstance(jobs, list) else []

    def parse_postings(self, raw_jobs: List[Any]) -> List[RawPosting]:
        """Parse each raw job, skipping the malformed ones."""
        postings = []
        skipped = 0

        for raw_job in raw_jobs:
            try:
                postings.append(self.parse_posting(raw_job))
            except MalformedPostingError as e:
                skipped += 1
                logger.warning(f"[{self.source_kind}] Skipped malformed posting: {e.message}")

        if skipped:
            logger.info(f"[{self.source_kind}] Parsed {len(postings)} postings, skipped {skipped}")
        return postings

    def parse_posting(self, raw_job: Any) -> RawPosting:
        raise NotImplementedError

    def _require_id(self, raw_job: Any) -> str:
        if not isinstance(raw_job, dict):
            raise MalformedPostingError(self.source_kind, f"posting is not an object: {raw_job!r:.80}")
        job_id = raw_job.get("id")
        if job_id is None or str(job_id).strip() == "":
            title = raw_job.get("title") or "<untitled>"
            raise MalformedPostingError(self.source_kind, f"posting '{title}' has no id")
        return str(job_id).strip()


def _text(value: Any) -> str:
    """String value of an optional field ("" for None / non-strings)."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _name_of(value: Any) -> str:
    """Name from a field that is either a string or an object with a name."""
    if isinstance(value, dict):
        return _text(value.get("name") or value.get("location"))
    return _text(value)


def _salary_amount(value: Any) -> Optional[float]:
    # Hourly rates keep their cents
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return round(float(value), 2)
    if isinstance(value, str):
        try:
            return round(float(value.replace(",", "")), 2)
        except ValueError:
            return None
    return None
