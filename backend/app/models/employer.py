"""Employer model: a company whose ATS job board is polled."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Enum as SQLEnum
import uuid
import enum

from app.database import Base
from app.database_types import GUID


class ATSType(str, enum.Enum):
    """Applicant tracking system hosting the employer's job board."""
    ASHBY = "ashby"
    GREENHOUSE = "greenhouse"


class EmployerStatus(str, enum.Enum):
    """Only active employers are polled."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Employer(Base):
    __tablename__ = "employers"
    
    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    
    # ATS information
    ats_type = Column(
        SQLEnum(ATSType, name="ats_type", create_type=True),
        nullable=False,
        index=True
    )
    board_identifier = Column(String, nullable=False)  # ATS-specific slug
    board_url = Column(String, nullable=True)
    
    status = Column(String, nullable=False, default=EmployerStatus.ACTIVE.value, index=True)
    
    # Posting counts maintained by the reconciliation engine
    total_jobs_count = Column(Integer, nullable=False, default=0)
    previous_jobs_count = Column(Integer, nullable=False, default=0)
    
    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, nullable=True)  # Last completed ingestion
