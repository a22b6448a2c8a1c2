from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, Float, Text, DateTime, ForeignKey, Index

from app.database import Base
from app.database_types import GUID


class ChangeType(str, Enum):
    """Kinds of audit records written by the reconciliation engine"""
    ADDED = "added"  # Also used when an inactive/stale job reappears
    REMOVED = "removed"
    MODIFIED = "modified"
    MARKED_STALE = "marked_stale"
    TRACKING_STARTED = "tracking_started"
    TRACKING_STOPPED = "tracking_stopped"


class JobChange(Base):
    """
    Append-only audit record.
    
    job_id is NULL for employer-level posting-count changes. Only the fields
    that changed carry values; the rest stay NULL.
    """
    __tablename__ = "job_changes"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=True)
    employer_id = Column(GUID, ForeignKey("employers.id"), nullable=False)
    change_type = Column(String, nullable=False)
    
    previous_title = Column(String, nullable=True)
    new_title = Column(String, nullable=True)
    previous_location = Column(String, nullable=True)
    new_location = Column(String, nullable=True)
    previous_description = Column(Text, nullable=True)
    new_description = Column(Text, nullable=True)
    previous_salary_min = Column(Float, nullable=True)
    new_salary_min = Column(Float, nullable=True)
    previous_salary_max = Column(Float, nullable=True)
    new_salary_max = Column(Float, nullable=True)
    previous_salary_currency = Column(String, nullable=True)
    new_salary_currency = Column(String, nullable=True)
    previous_salary_interval = Column(String, nullable=True)
    new_salary_interval = Column(String, nullable=True)
    
    # Employer-level count changes
    previous_jobs_count = Column(Integer, nullable=True)
    new_jobs_count = Column(Integer, nullable=True)
    
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    __table_args__ = (
        Index('idx_job_changes_employer_created', 'employer_id', 'created_at'),
    )
