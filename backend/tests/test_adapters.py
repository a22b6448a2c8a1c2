"""
Tests for the Ashby and Greenhouse adapters against a fake ATS server.
"""
import asyncio

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from app.config import Settings
from app.exceptions import UpstreamError
from app.models.employer import ATSType
from app.services.adapters import AshbyAdapter, GreenhouseAdapter, get_adapter
from app.services.adapters.ashby import ashby_locations


class FakeBoards:
    """Canned responses keyed by request path, plus a request log."""

    def __init__(self):
        self.responses = {}
        self.requests = []

    async def handle(self, request: web.Request) -> web.StreamResponse:
        self.requests.append((request.path, dict(request.query)))
        if request.path.endswith("/slow"):
            await asyncio.sleep(1)
        status, body = self.responses.get(request.path, (404, {"error": "not found"}))
        if isinstance(body, str):
            return web.Response(status=status, text=body, content_type="text/html")
        return web.json_response(body, status=status)


@pytest_asyncio.fixture
async def boards():
    fake = FakeBoards()
    app = web.Application()
    app.router.add_get("/{tail:.*}", fake.handle)

    server = TestServer(app)
    await server.start_server()
    fake.url = lambda path: str(server.make_url(path))
    try:
        yield fake
    finally:
        await server.close()


@pytest_asyncio.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


ASHBY_JOB = {
    "id": "a1",
    "title": "Backend Engineer",
    "isListed": True,
    "descriptionPlain": "Build our APIs.",
    "location": "San Francisco",
    "secondaryLocations": [{"location": "New York"}],
    "department": "Engineering",
    "jobUrl": "https://jobs.ashbyhq.com/acme/a1",
    "applyUrl": "https://jobs.ashbyhq.com/acme/a1/application",
    "compensation": {
        "summaryComponents": [
            {"compensationType": "EquityPercentage", "minValue": 0.1, "maxValue": 0.2},
            {
                "compensationType": "Salary",
                "minValue": 150000,
                "maxValue": 190000,
                "currencyCode": "USD",
                "interval": "1 YEAR",
            },
        ]
    },
}


# ============================================================
# ASHBY
# ============================================================

@pytest.mark.asyncio
async def test_ashby_fetch_parses_listed_postings(boards, http_session):
    boards.responses["/ashby/acme"] = (200, {
        "jobs": [
            ASHBY_JOB,
            {**ASHBY_JOB, "id": "a2", "isListed": False},
            {"title": "No id here", "isListed": True},
        ]
    })
    adapter = AshbyAdapter(http_session, base_url=boards.url("/ashby"))

    postings = await adapter.fetch("acme")

    assert len(postings) == 1
    posting = postings[0]
    assert posting.external_id == "a1"
    assert posting.title == "Backend Engineer"
    assert posting.description == "Build our APIs."
    assert posting.locations == ["San Francisco", "New York"]
    assert posting.location == "San Francisco, New York"
    assert posting.department == "Engineering"
    assert posting.url == "https://jobs.ashbyhq.com/acme/a1/application"
    assert posting.salary.min == 150000
    assert posting.salary.max == 190000
    assert posting.salary.currency == "USD"
    assert posting.salary.interval == "yearly"

    assert boards.requests == [("/ashby/acme", {"includeCompensation": "true"})]


def test_ashby_locations_array_deduplicated():
    raw = {"locations": [{"name": "London"}, "Berlin", "London"]}
    assert ashby_locations(raw, "") == ["London", "Berlin"]


def test_ashby_locations_postal_address():
    raw = {"address": {"postalAddress": {
        "addressLocality": "Austin", "addressRegion": "TX", "addressCountry": "USA"
    }}}
    assert ashby_locations(raw, "") == ["Austin, TX, USA"]


def test_ashby_locations_from_description_then_remote():
    assert ashby_locations({}, "This role is based in Denver.") == ["Denver"]
    assert ashby_locations({}, "") == ["Remote"]


def test_ashby_without_compensation_has_empty_salary():
    adapter = AshbyAdapter(None)
    posting = adapter.parse_posting({"id": "x", "title": "PM", "location": "Remote"})
    assert posting.salary.is_empty()
    assert posting.locations == ["Remote"]


def test_ashby_hourly_compensation_keeps_cents():
    adapter = AshbyAdapter(None)
    posting = adapter.parse_posting({
        "id": "h1",
        "title": "Support Specialist",
        "location": "Remote",
        "compensation": {"summaryComponents": [{
            "compensationType": "Salary",
            "minValue": 45.5,
            "maxValue": "52.25",
            "currencyCode": "USD",
            "interval": "1 HOUR",
        }]},
    })
    assert (posting.salary.min, posting.salary.max) == (45.5, 52.25)
    assert posting.salary.interval == "hourly"


@pytest.mark.asyncio
async def test_ashby_non_2xx_raises_upstream_error(boards, http_session):
    boards.responses["/ashby/acme"] = (500, {"error": "boom"})
    adapter = AshbyAdapter(http_session, base_url=boards.url("/ashby"))

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.fetch("acme")

    assert exc_info.value.status == 500
    assert exc_info.value.source_kind == "ashby"
    assert "ashby API returned 500" in str(exc_info.value)
    assert "boom" in exc_info.value.body


@pytest.mark.asyncio
async def test_ashby_invalid_json_raises_upstream_error(boards, http_session):
    boards.responses["/ashby/acme"] = (200, "<html>maintenance</html>")
    adapter = AshbyAdapter(http_session, base_url=boards.url("/ashby"))

    with pytest.raises(UpstreamError):
        await adapter.fetch("acme")


@pytest.mark.asyncio
async def test_ashby_non_object_payload_raises_upstream_error(boards, http_session):
    boards.responses["/ashby/acme"] = (200, [])
    adapter = AshbyAdapter(http_session, base_url=boards.url("/ashby"))

    with pytest.raises(UpstreamError):
        await adapter.fetch("acme")


@pytest.mark.asyncio
async def test_ashby_missing_jobs_array_is_empty_board(boards, http_session):
    boards.responses["/ashby/acme"] = (200, {"apiVersion": "1"})
    adapter = AshbyAdapter(http_session, base_url=boards.url("/ashby"))

    assert await adapter.fetch("acme") == []


@pytest.mark.asyncio
async def test_timeout_raises_upstream_error(boards, http_session):
    boards.responses["/ashby/slow"] = (200, {"jobs": []})
    adapter = AshbyAdapter(http_session, timeout_s=0.2, base_url=boards.url("/ashby"))

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.fetch("slow")

    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connection_error_raises_upstream_error(http_session):
    adapter = GreenhouseAdapter(http_session, timeout_s=2, base_url="http://127.0.0.1:1")

    with pytest.raises(UpstreamError):
        await adapter.fetch("globex")


# ============================================================
# GREENHOUSE
# ============================================================

@pytest.mark.asyncio
async def test_greenhouse_fetch_parses_and_caps(boards, http_session):
    boards.responses["/gh/globex/jobs"] = (200, {
        "jobs": [
            {
                "id": 101,
                "title": "Account Executive",
                "absolute_url": "https://boards.greenhouse.io/globex/jobs/101",
                "location": {"name": "Remote"},
                "offices": [{"name": "New York"}, {"name": "Chicago"}],
                "departments": [{"name": "Sales"}, {"name": "EMEA"}],
                "content": "&lt;p&gt;Base pay $120,000 - $150,000 per year.&lt;/p&gt;",
            },
            {
                "id": 102,
                "title": "Support Lead",
                "location": {"name": "Remote"},
                "content": "&lt;p&gt;Location: Toronto&lt;/p&gt;",
            },
            {"id": 103, "title": "Over the cap"},
        ]
    })
    adapter = GreenhouseAdapter(http_session, base_url=boards.url("/gh"), max_jobs=2)

    postings = await adapter.fetch("globex")

    assert [p.external_id for p in postings] == ["101", "102"]

    first = postings[0]
    assert first.description == "<p>Base pay $120,000 - $150,000 per year.</p>"
    assert first.locations == ["New York", "Chicago"]
    assert first.department == "Sales, EMEA"
    assert first.url == "https://boards.greenhouse.io/globex/jobs/101"
    assert (first.salary.min, first.salary.max) == (120000, 150000)
    assert first.salary.currency == "USD"
    assert first.salary.interval == "yearly"

    # Only "Remote" on the posting itself, so the description is consulted
    assert postings[1].locations == ["Toronto"]
    assert postings[1].salary.is_empty()

    assert boards.requests == [("/gh/globex/jobs", {"content": "true"})]


def test_greenhouse_description_fallback():
    adapter = GreenhouseAdapter(None)

    posting = adapter.parse_posting({
        "id": 5, "title": "Designer", "company_name": "Globex", "location": {"name": "Paris"}
    })
    assert posting.description == "Designer at Globex. Location: Paris"
    assert posting.locations == ["Paris"]

    bare = adapter.parse_posting({"id": 6, "title": "Designer"})
    assert bare.description == "Designer at the company. Location: Remote/Various"
    assert bare.locations == ["Remote"]


@pytest.mark.asyncio
async def test_greenhouse_unknown_board(boards, http_session):
    adapter = GreenhouseAdapter(http_session, base_url=boards.url("/gh"))

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.fetch("nope")

    assert exc_info.value.status == 404


# ============================================================
# FACTORY
# ============================================================

def test_get_adapter_by_ats_type():
    config = Settings(http_timeout_seconds=7, greenhouse_max_jobs=25)

    ashby = get_adapter(ATSType.ASHBY, None, config)
    greenhouse = get_adapter(ATSType.GREENHOUSE, None, config)

    assert isinstance(ashby, AshbyAdapter)
    assert ashby.timeout_s == 7
    assert isinstance(greenhouse, GreenhouseAdapter)
    assert greenhouse.max_jobs == 25
    assert get_adapter("lever", None, config) is None
