"""Collection cycle schemas."""
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class TriggerResponse(BaseModel):
    status: str
    message: str


class EmployerCollectionResult(BaseModel):
    """Outcome of one employer within a cycle."""
    employer_id: UUID
    employer_name: str
    status: str  # ok | upstream_error | persistence_error | error | unsupported
    fetched: int = 0
    added: int = 0
    updated: int = 0
    removed: int = 0
    stale: int = 0
    changes: int = 0
    count_updated: bool = False
    error: Optional[str] = None


class CollectionSummary(BaseModel):
    employers: List[EmployerCollectionResult] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> List[EmployerCollectionResult]:
        return [e for e in self.employers if e.status != "ok"]
