"""Normalized posting produced by the ATS adapters."""
from typing import Optional
from pydantic import BaseModel, Field


class SalaryInfo(BaseModel):
    """Salary range; every field is None when no salary was found."""
    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None
    interval: Optional[str] = None  # yearly | monthly | hourly

    def is_empty(self) -> bool:
        return self.min is None and self.max is None


class RawPosting(BaseModel):
    """
    One posting as fetched from an ATS, before reconciliation.
    
    external_id is stable across polls for the same posting and scoped to
    the employer; everything else may change between polls.
    """
    external_id: str = Field(..., min_length=1)
    title: str = ""
    description: str = ""
    locations: list[str] = Field(default_factory=list)
    department: str = ""
    url: str = ""
    salary: SalaryInfo = Field(default_factory=SalaryInfo)

    @property
    def location(self) -> str:
        """Denormalized location string stored on the job."""
        return ", ".join(self.locations)
