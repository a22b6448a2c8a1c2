"""
Tests for the HTTP API (collector trigger, departments, health).
"""
import pytest
from httpx import AsyncClient

from app.api import collector as collector_api
from app.api.collector import get_collection_runner
from app.config import settings
from app.main import app as fastapi_app


@pytest.fixture
def runner_calls():
    """Replace the background collection runner with a recorder."""
    calls = []

    async def fake_runner():
        calls.append("run")

    fastapi_app.dependency_overrides[get_collection_runner] = lambda: fake_runner
    return calls


# ============================================================
# COLLECTOR TRIGGER
# ============================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "POST"])
async def test_trigger_with_valid_secret(async_client: AsyncClient, api_secret, runner_calls, method):
    response = await async_client.request(method, "/api/collector/run", params={"secret": api_secret})

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "message": "Job collection started in background",
    }
    assert runner_calls == ["run"]


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"secret": "wrong"}, {}])
async def test_trigger_rejects_bad_secret(async_client: AsyncClient, api_secret, runner_calls, params):
    response = await async_client.get("/api/collector/run", params=params)

    assert response.status_code == 401
    assert runner_calls == []


@pytest.mark.asyncio
async def test_trigger_while_cycle_running_is_skipped(
    async_client: AsyncClient, api_secret, runner_calls, monkeypatch
):
    monkeypatch.setattr(collector_api, "collection_in_progress", lambda: True)

    response = await async_client.post("/api/collector/run", params={"secret": api_secret})

    assert response.status_code == 200
    assert response.json() == {
        "status": "running",
        "message": "Job collection already in progress",
    }
    assert runner_calls == []


@pytest.mark.asyncio
async def test_trigger_without_configured_secret(async_client: AsyncClient, monkeypatch, runner_calls):
    monkeypatch.setattr(settings, "api_secret", None)

    response = await async_client.get("/api/collector/run", params={"secret": "anything"})

    assert response.status_code == 503
    assert runner_calls == []


# ============================================================
# DEPARTMENTS
# ============================================================

@pytest.mark.asyncio
async def test_list_departments(async_client: AsyncClient, departments):
    response = await async_client.get("/api/departments")

    assert response.status_code == 200
    data = response.json()
    assert [d["name"] for d in data] == ["Engineering", "Sales", "Marketing"]
    assert data[1]["keywords"] == ["account executive", "business development"]
    assert data[0]["id"] == departments[0].id


@pytest.mark.asyncio
async def test_replace_keywords_invalidates_cache(
    async_client: AsyncClient, db, api_secret, departments, department_cache
):
    await department_cache.get_departments(db)
    assert department_cache.loaded

    response = await async_client.put(
        f"/api/departments/{departments[0].id}/keywords",
        params={"secret": api_secret},
        json={"keywords": ["sre", "devops", "SRE"]},
    )

    assert response.status_code == 200
    assert response.json()["keywords"] == ["sre", "devops"]
    assert not department_cache.loaded


@pytest.mark.asyncio
async def test_add_keywords(async_client: AsyncClient, api_secret, departments, department_cache):
    response = await async_client.post(
        f"/api/departments/{departments[2].id}/keywords",
        params={"secret": api_secret},
        json={"keywords": ["content"]},
    )

    assert response.status_code == 200
    assert response.json()["keywords"] == ["growth", "seo", "brand", "content"]


@pytest.mark.asyncio
async def test_keywords_unknown_department(async_client: AsyncClient, api_secret, departments, department_cache):
    response = await async_client.put(
        "/api/departments/999/keywords",
        params={"secret": api_secret},
        json={"keywords": ["x"]},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_keywords_require_secret(async_client: AsyncClient, api_secret, departments, department_cache):
    response = await async_client.put(
        f"/api/departments/{departments[0].id}/keywords",
        json={"keywords": ["x"]},
    )

    assert response.status_code == 401


# ============================================================
# HEALTH
# ============================================================

@pytest.mark.asyncio
async def test_health_and_root(async_client: AsyncClient):
    health = await async_client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["database"] == "ok"

    root = await async_client.get("/")
    assert root.json()["message"] == "Job Tracker API"
