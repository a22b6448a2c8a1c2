"""
Collector trigger endpoint.

GET or POST /api/collector/run?secret=... starts a collection cycle in the
background and returns immediately.
"""
import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.api.auth import require_secret
from app.schemas.collector import TriggerResponse
from app.services.job_collector import collection_in_progress, run_collection_cycle

logger = logging.getLogger(__name__)

router = APIRouter()


def get_collection_runner(request: Request) -> Callable[[], Awaitable]:
    """Runner for one cycle, bound to the app's department cache."""
    cache = request.app.state.department_cache

    async def runner():
        return await run_collection_cycle(cache)

    return runner


@router.api_route("/run", methods=["GET", "POST"], response_model=TriggerResponse)
async def trigger_collection(
    background_tasks: BackgroundTasks,
    _: None = Depends(require_secret),
    runner: Callable[[], Awaitable] = Depends(get_collection_runner)
):
    """
    Start a job collection cycle.

    Returns:
        200: Cycle accepted (processing continues in the background), or
             skipped because a cycle is already running
        401: Secret missing or wrong
        503: No secret configured on the server
    """
    if collection_in_progress():
        logger.info("Job collection triggered while a cycle is running, skipping")
        return TriggerResponse(
            status="running",
            message="Job collection already in progress",
        )

    background_tasks.add_task(runner)
    logger.info("Job collection triggered")

    return TriggerResponse(
        status="success",
        message="Job collection started in background",
    )
