"""
Collection orchestrator.

Polls every active employer's ATS board in turn, reconciles the fetched
postings against stored jobs and writes the result. Employers are processed
sequentially; one employer failing never stops the cycle.
"""
import asyncio
import logging
from typing import Callable, Optional
from uuid import UUID

import aiohttp
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import database
from app.config import Settings, settings as default_settings, validate_collector_settings
from app.exceptions import ConfigurationError, PersistenceError, UpstreamError
from app.models.employer import ATSType, Employer
from app.schemas.collector import CollectionSummary, EmployerCollectionResult
from app.schemas.reconciliation import EmployerUpdate, MutationKind
from app.services.adapters import BaseAdapter, get_adapter
from app.services.department_classifier import DepartmentCache
from app.services.error_logger import log_api_error
from app.services.job_store import JobStore
from app.services.reconciliation import reconcile

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]
AdapterFactory = Callable[[ATSType, aiohttp.ClientSession], Optional[BaseAdapter]]


async def update_employer_job_count(
    employer_id: UUID,
    update: EmployerUpdate,
    session_factory: Optional[SessionFactory] = None,
    max_attempts: int = 3,
    backoff_seconds: float = 1.0
) -> bool:
    """
    Write the employer's posting counts, retrying with exponential backoff
    (backoff_seconds * 2^attempt). Each attempt uses a fresh session.

    Returns:
        True if the update was committed, False once attempts are exhausted
    """
    factory = session_factory or database.AsyncSessionLocal

    for attempt in range(max_attempts):
        try:
            async with factory() as db:
                await JobStore(db).update_employer(employer_id, update.model_dump())
                await db.commit()
            return True
        except SQLAlchemyError as e:
            logger.warning(
                f"Employer {employer_id} count update failed "
                f"(attempt {attempt + 1}/{max_attempts}): {e}"
            )
            if attempt < max_attempts - 1:
                await asyncio.sleep(backoff_seconds * (2 ** attempt))

    logger.error(f"Giving up on count update for employer {employer_id} after {max_attempts} attempts")
    return False


async def collect_jobs_for_employer(
    employer: Employer,
    adapter: Optional[BaseAdapter],
    cache: DepartmentCache,
    session_factory: Optional[SessionFactory] = None,
    config: Settings = default_settings
) -> EmployerCollectionResult:
    """
    Fetch, reconcile and persist one employer.

    Any failure is logged, sent to the api_errors table and reported in the
    returned result; the employer's jobs are left as they were.
    """
    factory = session_factory or database.AsyncSessionLocal
    outcome = EmployerCollectionResult(
        employer_id=employer.id,
        employer_name=employer.name,
        status="ok",
    )

    if adapter is None:
        logger.warning(f"Unsupported ATS type {employer.ats_type} for {employer.name}, skipping")
        outcome.status = "unsupported"
        return outcome

    # Fetch
    try:
        postings = await adapter.fetch(employer.board_identifier, employer.board_url)
    except UpstreamError as e:
        logger.error(f"Error fetching jobs for {employer.name}: {e}")
        await log_api_error(
            factory,
            source_kind=adapter.source_kind,
            employer_id=employer.id,
            employer_name=employer.name,
            message=str(e),
        )
        outcome.status = "upstream_error"
        outcome.error = str(e)
        return outcome

    outcome.fetched = len(postings)
    logger.info(f"Found {len(postings)} jobs for {employer.name}")

    # Reconcile and write in one transaction
    try:
        async with factory() as db:
            try:
                store = JobStore(db, batch_size=config.write_batch_size)
                classifier = await cache.get_classifier(db)
                existing = await store.list_jobs(employer.id)
                result = reconcile(
                    employer,
                    existing,
                    postings,
                    classifier=classifier,
                    stale_after_days=config.stale_after_days,
                )
                stats = await store.apply(result)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError(f"Failed to store jobs for {employer.name}: {e}") from e
            except Exception:
                await db.rollback()
                raise
    except PersistenceError as e:
        logger.error(str(e))
        await log_api_error(
            factory,
            source_kind="persistence",
            employer_id=employer.id,
            employer_name=employer.name,
            message=str(e),
        )
        outcome.status = "persistence_error"
        outcome.error = str(e)
        return outcome
    except Exception as e:
        message = f"Failed to process jobs for {employer.name}: {type(e).__name__}: {e}"
        logger.exception(message)
        await log_api_error(
            factory,
            source_kind="reconciliation",
            employer_id=employer.id,
            employer_name=employer.name,
            message=message,
        )
        outcome.status = "error"
        outcome.error = message
        return outcome

    if stats["failed_rows"]:
        logger.warning(f"{stats['failed_rows']} rows could not be written for {employer.name}")

    outcome.added = len(result.mutations_of(MutationKind.ADD))
    outcome.updated = len(result.mutations_of(MutationKind.UPDATE))
    outcome.removed = len(result.mutations_of(MutationKind.REMOVE))
    outcome.stale = len(result.mutations_of(MutationKind.STALE))
    outcome.changes = stats["changes"]

    outcome.count_updated = await update_employer_job_count(
        employer.id,
        result.employer_update,
        session_factory=factory,
        max_attempts=config.count_update_max_attempts,
        backoff_seconds=config.count_update_backoff_seconds,
    )
    return outcome


async def collect_all_jobs(
    session_factory: Optional[SessionFactory] = None,
    http_session: Optional[aiohttp.ClientSession] = None,
    cache: Optional[DepartmentCache] = None,
    adapter_factory: Optional[AdapterFactory] = None,
    cancel_event: Optional[asyncio.Event] = None,
    config: Settings = default_settings
) -> CollectionSummary:
    """
    Run one collection cycle over all active employers.

    Args:
        session_factory: Session factory (defaults to app.database.AsyncSessionLocal)
        http_session: Shared aiohttp session; one is opened for the cycle if omitted
        cache: Department cache; a private one is used if omitted
        adapter_factory: (ats_type, http_session) -> adapter or None
        cancel_event: Checked between employers; set it to stop the cycle
        config: Settings for limits, delays and retries

    Raises:
        ConfigurationError: settings are unusable; nothing is processed
    """
    validate_collector_settings(config)

    if http_session is None:
        async with aiohttp.ClientSession() as session:
            return await collect_all_jobs(
                session_factory=session_factory,
                http_session=session,
                cache=cache,
                adapter_factory=adapter_factory,
                cancel_event=cancel_event,
                config=config,
            )

    factory = session_factory or database.AsyncSessionLocal
    cache = cache or DepartmentCache()
    if adapter_factory is None:
        def adapter_factory(ats_type, session):
            return get_adapter(ats_type, session, config)

    async with factory() as db:
        employers = await JobStore(db).list_active_employers()
    logger.info(f"Starting collection cycle for {len(employers)} active employers")

    summary = CollectionSummary()
    for index, employer in enumerate(employers):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Collection cycle cancelled after {index} of {len(employers)} employers")
            summary.cancelled = True
            break

        if index > 0 and config.collector_delay_seconds > 0:
            await asyncio.sleep(config.collector_delay_seconds)

        logger.info(f"Processing {employer.name} ({employer.ats_type.value})")
        adapter = adapter_factory(employer.ats_type, http_session)
        summary.employers.append(
            await collect_jobs_for_employer(employer, adapter, cache, factory, config)
        )

    logger.info(
        f"Collection cycle finished: {len(summary.employers)} employers processed, "
        f"{len(summary.failed)} failed"
    )
    return summary


# One cycle at a time per process
_cycle_lock = asyncio.Lock()


def collection_in_progress() -> bool:
    return _cycle_lock.locked()


async def run_collection_cycle(cache: Optional[DepartmentCache] = None) -> Optional[CollectionSummary]:
    """
    Entry point for the HTTP and scheduled triggers.

    Returns None without doing anything when a cycle is already running, or
    when the settings are unusable.
    """
    if _cycle_lock.locked():
        logger.warning("Collection cycle already running, ignoring trigger")
        return None

    async with _cycle_lock:
        try:
            return await collect_all_jobs(cache=cache)
        except ConfigurationError as e:
            logger.error(f"Collection cycle aborted: {e}")
            return None
