from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, Float, Text, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.database_types import GUID


class JobStatus(str, Enum):
    """
    Lifecycle of a persisted posting.
    
    active <-> inactive (missing from a fetch / reappears)
    active -> stale (unchanged for the staleness horizon)
    stale -> active (reappears in a fetch)
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    STALE = "stale"


class Job(Base):
    __tablename__ = "jobs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    employer_id = Column(GUID, ForeignKey("employers.id"), nullable=False)
    external_id = Column(String, nullable=False)  # Upstream id, unique per employer
    
    # Posting details
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=True)
    location = Column(String, nullable=True)  # Joined location string
    is_remote = Column(Boolean, nullable=False, default=False)
    url = Column(String, nullable=True)
    
    # Department (department_raw kept verbatim for manual reclassification)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    department_raw = Column(String, nullable=True)
    
    # Salary
    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String, nullable=True)
    salary_interval = Column(String, nullable=True)  # yearly | monthly | hourly
    
    status = Column(String, nullable=False, default=JobStatus.ACTIVE.value)
    
    # Timestamps
    last_change = Column(DateTime, nullable=True)
    last_seen_active = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    # Relationships
    locations = relationship("JobLocation", back_populates="job", cascade="all, delete-orphan")
    
    __table_args__ = (
        # Join key between upstream postings and persisted jobs
        UniqueConstraint('employer_id', 'external_id', name='uq_jobs_employer_external_id'),
        Index('idx_jobs_employer_status', 'employer_id', 'status'),
    )


class JobLocation(Base):
    """One atomic location of a job (a job can list several)."""
    __tablename__ = "job_locations"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    location = Column(String, nullable=False)
    is_remote = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    job = relationship("Job", back_populates="locations")
    
    __table_args__ = (
        UniqueConstraint('job_id', 'location', name='uq_job_locations_job_location'),
    )
