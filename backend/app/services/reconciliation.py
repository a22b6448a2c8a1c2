"""
Reconciliation engine.

Diffs a freshly fetched set of postings against the jobs already stored
for one employer and works out what to write: job inserts/updates, status
transitions and the JobChange audit records that describe them.

This module only computes; it reads the existing jobs and writes nothing.
The job store applies the result afterwards in one batch.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from app.models.employer import Employer
from app.models.job import Job, JobStatus
from app.models.job_change import ChangeType
from app.schemas.posting import RawPosting
from app.schemas.reconciliation import (
    ChangeRecord,
    EmployerUpdate,
    JobMutation,
    MutationKind,
    ReconciliationResult,
)
from app.services.department_classifier import DepartmentClassifier
from app.services.extractors import split_location_string

logger = logging.getLogger(__name__)


STALE_AFTER_DAYS = 60

# Fields compared between a stored job and a fresh posting. Each name maps to
# the previous_<name> / new_<name> pair on JobChange.
TRACKED_FIELDS = (
    "title",
    "location",
    "description",
    "salary_min",
    "salary_max",
    "salary_currency",
    "salary_interval",
)


def atomic_locations(posting: RawPosting) -> List[str]:
    """Split every raw location of a posting; order kept, duplicates dropped."""
    seen = set()
    out = []
    for raw in posting.locations:
        for location in split_location_string(raw):
            if location not in seen:
                seen.add(location)
                out.append(location)
    return out


def build_job_fields(
    employer_id: Any,
    posting: RawPosting,
    department_id: Optional[int],
    now: datetime
) -> Dict[str, Any]:
    """Column values for a job as described by a fresh posting."""
    return {
        "employer_id": employer_id,
        "external_id": posting.external_id,
        "title": posting.title,
        "description": posting.description,
        "location": posting.location,
        "department_id": department_id,
        "department_raw": posting.department or None,
        "salary_min": posting.salary.min,
        "salary_max": posting.salary.max,
        "salary_currency": posting.salary.currency,
        "salary_interval": posting.salary.interval,
        "url": posting.url,
        "status": JobStatus.ACTIVE.value,
        "last_seen_active": now,
    }


def diff_job(job: Job, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Previous/new pairs for every tracked field that differs.

    Returns:
        {"previous_title": ..., "new_title": ..., ...}; empty if unchanged
    """
    pairs: Dict[str, Any] = {}
    for name in TRACKED_FIELDS:
        previous = getattr(job, name)
        new = fields[name]
        if previous != new:
            pairs[f"previous_{name}"] = previous
            pairs[f"new_{name}"] = new
    return pairs


def _dedupe_postings(postings: Iterable[RawPosting], employer_name: str) -> List[RawPosting]:
    seen = set()
    unique = []
    for posting in postings:
        if posting.external_id in seen:
            logger.warning(f"Duplicate posting {posting.external_id} for {employer_name}, keeping the first")
            continue
        seen.add(posting.external_id)
        unique.append(posting)
    return unique


def reconcile(
    employer: Employer,
    existing_jobs: Iterable[Job],
    postings: Iterable[RawPosting],
    classifier: Optional[DepartmentClassifier] = None,
    now: Optional[datetime] = None,
    stale_after_days: int = STALE_AFTER_DAYS
) -> ReconciliationResult:
    """
    Reconcile one employer's fresh postings against its stored jobs.

    - New external id: ADD + "added" change with the new_* fields
    - Known id with differing fields: UPDATE + "modified" change with only
      the differing pairs
    - Known id whose job is inactive/stale: UPDATE back to active, recorded
      as "added" whatever the field diffs
    - Known id, unchanged and active: TOUCH (last_seen_active only)
    - Active job missing from the fetch: REMOVE + "removed" change
    - Touched job whose last change is older than the staleness horizon:
      STALE + "marked_stale" change
    - Posting count differs from the previous count: employer-level
      "modified" change (job_id None)

    Args:
        employer: Employer being reconciled
        existing_jobs: All stored jobs of the employer
        postings: Postings just fetched from the employer's ATS
        classifier: Department classifier; departments stay None without one
        now: Reference time (defaults to utcnow)
        stale_after_days: Staleness horizon

    Returns:
        ReconciliationResult with mutations, change records, the employer
        count update and the atomic locations of added/updated jobs
    """
    now = now or datetime.utcnow()
    stale_cutoff = now - timedelta(days=stale_after_days)

    fresh = _dedupe_postings(postings, employer.name)
    existing_by_external_id: Dict[str, Job] = {job.external_id: job for job in existing_jobs}

    mutations: List[JobMutation] = []
    changes: List[ChangeRecord] = []
    locations: Dict[str, List[str]] = {}
    touched: List[Job] = []
    seen_ids = set()

    for posting in fresh:
        seen_ids.add(posting.external_id)

        department_id = None
        if classifier is not None:
            department_id = classifier.classify(posting.title, posting.description, posting.department)

        fields = build_job_fields(employer.id, posting, department_id, now)
        existing = existing_by_external_id.get(posting.external_id)

        if existing is None:
            mutations.append(JobMutation(
                kind=MutationKind.ADD,
                external_id=posting.external_id,
                fields={**fields, "created_at": now, "last_change": now},
            ))
            changes.append(ChangeRecord(
                external_id=posting.external_id,
                employer_id=employer.id,
                change_type=ChangeType.ADDED.value,
                created_at=now,
                **{f"new_{name}": fields[name] for name in TRACKED_FIELDS},
            ))
            locations[posting.external_id] = atomic_locations(posting)
            continue

        pairs = diff_job(existing, fields)
        reactivated = existing.status in (JobStatus.INACTIVE.value, JobStatus.STALE.value)

        if pairs or reactivated:
            change_type = ChangeType.ADDED if reactivated else ChangeType.MODIFIED
            mutations.append(JobMutation(
                kind=MutationKind.UPDATE,
                external_id=posting.external_id,
                job_id=existing.id,
                fields={**fields, "last_change": now},
            ))
            changes.append(ChangeRecord(
                external_id=posting.external_id,
                job_id=existing.id,
                employer_id=employer.id,
                change_type=change_type.value,
                created_at=now,
                **pairs,
            ))
            locations[posting.external_id] = atomic_locations(posting)
            logger.debug(
                f"Job {existing.external_id} {change_type.value}: "
                f"{sorted(k[4:] for k in pairs if k.startswith('new_'))}"
            )
        else:
            touched.append(existing)

    # Active jobs that disappeared from the board
    for job in existing_by_external_id.values():
        if job.external_id in seen_ids or job.status != JobStatus.ACTIVE.value:
            continue
        mutations.append(JobMutation(
            kind=MutationKind.REMOVE,
            external_id=job.external_id,
            job_id=job.id,
            fields={"status": JobStatus.INACTIVE.value, "last_change": now},
        ))
        changes.append(ChangeRecord(
            external_id=job.external_id,
            job_id=job.id,
            employer_id=employer.id,
            change_type=ChangeType.REMOVED.value,
            previous_title=job.title,
            previous_location=job.location,
            created_at=now,
        ))

    # Unchanged jobs either go stale or just get their last_seen_active refreshed
    for job in touched:
        if job.last_change is not None and job.last_change < stale_cutoff:
            mutations.append(JobMutation(
                kind=MutationKind.STALE,
                external_id=job.external_id,
                job_id=job.id,
                fields={"status": JobStatus.STALE.value, "last_change": now, "last_seen_active": now},
            ))
            changes.append(ChangeRecord(
                external_id=job.external_id,
                job_id=job.id,
                employer_id=employer.id,
                change_type=ChangeType.MARKED_STALE.value,
                previous_title=job.title,
                created_at=now,
            ))
        else:
            mutations.append(JobMutation(
                kind=MutationKind.TOUCH,
                external_id=job.external_id,
                job_id=job.id,
                fields={"last_seen_active": now},
            ))

    # Employer-level posting count
    new_count = len(fresh)
    previous_count = employer.previous_jobs_count or 0
    if new_count != previous_count:
        changes.append(ChangeRecord(
            employer_id=employer.id,
            change_type=ChangeType.MODIFIED.value,
            previous_jobs_count=previous_count,
            new_jobs_count=new_count,
            created_at=now,
        ))

    result = ReconciliationResult(
        employer_id=employer.id,
        mutations=mutations,
        changes=changes,
        employer_update=EmployerUpdate(
            total_jobs_count=new_count,
            previous_jobs_count=new_count,
            last_updated=now,
        ),
        locations=locations,
    )

    logger.info(
        f"Reconciled {new_count} postings for {employer.name}: "
        f"added={len(result.mutations_of(MutationKind.ADD))} "
        f"updated={len(result.mutations_of(MutationKind.UPDATE))} "
        f"removed={len(result.mutations_of(MutationKind.REMOVE))} "
        f"stale={len(result.mutations_of(MutationKind.STALE))} "
        f"changes={len(changes)}"
    )
    return result
