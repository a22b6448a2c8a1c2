"""
Job store: the pipeline's only persistence boundary.

Wraps one AsyncSession. Batched writes go out in chunks, each inside a
SAVEPOINT; a failing chunk is retried row by row so one bad record doesn't
sink its neighbours. Callers own the surrounding transaction (commit or
rollback).
"""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, insert, update, delete, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.department import Department
from app.models.employer import Employer, EmployerStatus
from app.models.job import Job, JobLocation
from app.models.job_change import JobChange
from app.schemas.department import DepartmentEntry
from app.schemas.reconciliation import MutationKind, ReconciliationResult
from app.services.extractors import is_remote_location, split_location_string

logger = logging.getLogger(__name__)


DEFAULT_BATCH_SIZE = 10
BACKFILL_BATCH_SIZE = 50


def chunked(rows: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


class JobStore:
    """Reads and batched writes for employers, jobs, changes and departments."""

    def __init__(self, db: AsyncSession, batch_size: int = DEFAULT_BATCH_SIZE):
        self.db = db
        self.batch_size = max(1, batch_size)
        self.failed_rows = 0

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    async def list_active_employers(self) -> List[Employer]:
        result = await self.db.execute(
            select(Employer)
            .where(Employer.status == EmployerStatus.ACTIVE.value)
            .order_by(Employer.name)
        )
        return list(result.scalars().all())

    async def list_jobs(self, employer_id: UUID) -> List[Job]:
        result = await self.db.execute(select(Job).where(Job.employer_id == employer_id))
        return list(result.scalars().all())

    async def list_departments(self) -> List[DepartmentEntry]:
        result = await self.db.execute(select(Department).order_by(Department.id))
        return [DepartmentEntry.model_validate(d) for d in result.scalars().all()]

    async def job_ids_by_external_id(self, employer_id: UUID, external_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(external_ids)
        if not ids:
            return {}
        mapping: Dict[str, int] = {}
        for batch in chunked(ids, 500):
            result = await self.db.execute(
                select(Job.external_id, Job.id).where(
                    and_(Job.employer_id == employer_id, Job.external_id.in_(batch))
                )
            )
            mapping.update({external_id: job_id for external_id, job_id in result.all()})
        return mapping

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    async def _write_chunks(
        self,
        rows: List[Dict[str, Any]],
        write: Callable[[List[Dict[str, Any]]], Awaitable[None]],
        label: str
    ) -> int:
        """
        Write rows chunk by chunk, falling back to one row at a time when a
        chunk fails. Returns the number of rows written.
        """
        written = 0
        for chunk in chunked(rows, self.batch_size):
            chunk = list(chunk)
            try:
                async with self.db.begin_nested():
                    await write(chunk)
                written += len(chunk)
                continue
            except SQLAlchemyError as e:
                logger.warning(f"Error writing {label} batch of {len(chunk)}, retrying individually: {e}")

            for row in chunk:
                try:
                    async with self.db.begin_nested():
                        await write([row])
                    written += 1
                except SQLAlchemyError as e:
                    self.failed_rows += 1
                    logger.error(f"Error writing {label} row {_row_label(row)}: {e}")
        return written

    async def upsert_jobs(self, rows: List[Dict[str, Any]]) -> int:
        """
        Insert rows without an "id", update rows with one (only the columns
        present in the row are touched).
        """
        new_rows = [row for row in rows if row.get("id") is None]
        existing_rows = [row for row in rows if row.get("id") is not None]

        async def _insert(chunk):
            await self.db.execute(insert(Job), [{k: v for k, v in r.items() if k != "id"} for r in chunk])

        async def _update(chunk):
            # Bulk UPDATE by primary key needs uniform keys per statement
            by_keys: Dict[tuple, List[Dict[str, Any]]] = {}
            for r in chunk:
                by_keys.setdefault(tuple(sorted(r)), []).append(r)
            for group in by_keys.values():
                await self.db.execute(update(Job), group)

        written = 0
        if new_rows:
            written += await self._write_chunks(new_rows, _insert, "job insert")
        if existing_rows:
            written += await self._write_chunks(existing_rows, _update, "job update")
        return written

    async def insert_changes(self, rows: List[Dict[str, Any]]) -> int:
        async def _insert(chunk):
            await self.db.execute(insert(JobChange), chunk)

        return await self._write_chunks(rows, _insert, "job change")

    async def update_employer(self, employer_id: UUID, fields: Dict[str, Any]) -> None:
        """Update employer columns; errors propagate to the caller's retry loop."""
        await self.db.execute(
            update(Employer).where(Employer.id == employer_id).values(**fields)
        )

    async def sync_job_locations(self, locations_by_job: Dict[int, List[str]]) -> int:
        """
        Bring each job's JobLocation rows in line with its atomic locations
        (insert new ones, delete ones no longer listed) and set Job.is_remote.
        Returns the number of rows inserted or deleted.
        """
        if not locations_by_job:
            return 0

        current: Dict[int, Dict[str, int]] = {job_id: {} for job_id in locations_by_job}
        for batch in chunked(list(locations_by_job), 500):
            result = await self.db.execute(
                select(JobLocation.job_id, JobLocation.location, JobLocation.id)
                .where(JobLocation.job_id.in_(batch))
            )
            for job_id, location, location_id in result.all():
                current[job_id][location] = location_id

        now = datetime.utcnow()
        to_insert: List[Dict[str, Any]] = []
        to_delete: List[int] = []
        remote_flags: List[Dict[str, Any]] = []

        for job_id, wanted in locations_by_job.items():
            existing = current[job_id]
            wanted_set = set(wanted)
            for location in wanted:
                if location not in existing:
                    to_insert.append({
                        "job_id": job_id,
                        "location": location,
                        "is_remote": is_remote_location(location),
                        "created_at": now,
                    })
            to_delete.extend(loc_id for loc, loc_id in existing.items() if loc not in wanted_set)
            remote_flags.append({"id": job_id, "is_remote": any(is_remote_location(l) for l in wanted)})

        if to_delete:
            await self.db.execute(delete(JobLocation).where(JobLocation.id.in_(to_delete)))

        async def _insert(chunk):
            await self.db.execute(insert(JobLocation), chunk)

        inserted = await self._write_chunks(to_insert, _insert, "job location") if to_insert else 0

        async def _flag(chunk):
            await self.db.execute(update(Job), chunk)

        await self._write_chunks(remote_flags, _flag, "job remote flag")
        return inserted + len(to_delete)

    async def apply(self, result: ReconciliationResult) -> Dict[str, int]:
        """
        Write a reconciliation result: new jobs, job updates, change records
        (linked to the ids of new jobs) and location sets. Does not commit and
        does not touch the employer row.
        """
        adds = [dict(m.fields) for m in result.mutations_of(MutationKind.ADD)]
        updates = [
            {"id": m.job_id, **m.fields}
            for m in result.mutations
            if m.kind != MutationKind.ADD
        ]

        inserted = await self.upsert_jobs(adds) if adds else 0
        updated = await self.upsert_jobs(updates) if updates else 0

        # Ids for the jobs just inserted
        new_external_ids = [row["external_id"] for row in adds]
        job_ids = await self.job_ids_by_external_id(result.employer_id, new_external_ids)
        for m in result.mutations:
            if m.job_id is not None:
                job_ids[m.external_id] = m.job_id

        change_rows = []
        for change in result.changes:
            row = change.model_dump(exclude={"external_id"})
            if row["job_id"] is None and change.external_id is not None:
                row["job_id"] = job_ids.get(change.external_id)
                if row["job_id"] is None:
                    logger.warning(f"Dropping {change.change_type} change for unsaved job {change.external_id}")
                    continue
            change_rows.append(row)
        changes = await self.insert_changes(change_rows) if change_rows else 0

        locations_by_job = {
            job_ids[external_id]: locs
            for external_id, locs in result.locations.items()
            if external_id in job_ids
        }
        location_rows = await self.sync_job_locations(locations_by_job)

        return {
            "inserted": inserted,
            "updated": updated,
            "changes": changes,
            "location_rows": location_rows,
            "failed_rows": self.failed_rows,
        }


async def backfill_job_locations(db: AsyncSession, batch_size: int = BACKFILL_BATCH_SIZE) -> int:
    """
    Build JobLocation rows for jobs that have a location string but no
    location rows yet. Returns the number of jobs processed.
    """
    has_locations = select(JobLocation.job_id).distinct()
    result = await db.execute(
        select(Job.id, Job.location)
        .where(and_(Job.location.is_not(None), Job.id.not_in(has_locations)))
        .order_by(Job.created_at.desc())
    )
    jobs = result.all()
    logger.info(f"Found {len(jobs)} jobs without location rows")

    store = JobStore(db, batch_size=batch_size)
    processed = 0
    for batch in chunked(jobs, batch_size):
        locations_by_job = {
            job_id: split_location_string(location)
            for job_id, location in batch
            if split_location_string(location)
        }
        await store.sync_job_locations(locations_by_job)
        await db.commit()
        processed += len(locations_by_job)
        logger.info(f"Backfilled locations for {len(locations_by_job)} jobs in this batch")

    return processed


def _row_label(row: Dict[str, Any]) -> Optional[str]:
    for key in ("external_id", "id", "job_id", "location"):
        if row.get(key) is not None:
            return f"{key}={row[key]}"
    return None
