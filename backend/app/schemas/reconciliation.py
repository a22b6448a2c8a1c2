"""Output of one reconciliation pass, applied by the job store afterwards."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class MutationKind(str, Enum):
    ADD = "add"          # Insert a new job
    UPDATE = "update"    # Fields changed, or job reactivated
    TOUCH = "touch"      # Unchanged, refresh last_seen_active only
    REMOVE = "remove"    # Missing from the fetch -> inactive
    STALE = "stale"      # Unchanged past the staleness horizon


class JobMutation(BaseModel):
    kind: MutationKind
    external_id: str
    job_id: Optional[int] = None  # None for ADD until inserted
    fields: Dict[str, Any] = Field(default_factory=dict)


class ChangeRecord(BaseModel):
    """
    JobChange row to insert.
    
    external_id links records for newly added jobs to the id assigned on
    insert; it is None for employer-level count changes.
    """
    external_id: Optional[str] = None
    job_id: Optional[int] = None
    employer_id: UUID
    change_type: str
    previous_title: Optional[str] = None
    new_title: Optional[str] = None
    previous_location: Optional[str] = None
    new_location: Optional[str] = None
    previous_description: Optional[str] = None
    new_description: Optional[str] = None
    previous_salary_min: Optional[float] = None
    new_salary_min: Optional[float] = None
    previous_salary_max: Optional[float] = None
    new_salary_max: Optional[float] = None
    previous_salary_currency: Optional[str] = None
    new_salary_currency: Optional[str] = None
    previous_salary_interval: Optional[str] = None
    new_salary_interval: Optional[str] = None
    previous_jobs_count: Optional[int] = None
    new_jobs_count: Optional[int] = None
    created_at: datetime


class EmployerUpdate(BaseModel):
    total_jobs_count: int
    previous_jobs_count: int
    last_updated: datetime


class ReconciliationResult(BaseModel):
    employer_id: UUID
    mutations: List[JobMutation] = Field(default_factory=list)
    changes: List[ChangeRecord] = Field(default_factory=list)
    employer_update: EmployerUpdate
    # Atomic locations for added/updated jobs, keyed by external_id
    locations: Dict[str, List[str]] = Field(default_factory=dict)

    def mutations_of(self, kind: MutationKind) -> List[JobMutation]:
        return [m for m in self.mutations if m.kind == kind]

    def changes_of(self, change_type: str) -> List[ChangeRecord]:
        return [c for c in self.changes if c.change_type == change_type]
