"""Database models"""
from app.models.employer import Employer, ATSType, EmployerStatus
from app.models.department import Department
from app.models.job import Job, JobLocation, JobStatus
from app.models.job_change import JobChange, ChangeType
from app.models.api_error import ApiError

__all__ = [
    "Employer",
    "ATSType",
    "EmployerStatus",
    "Department",
    "Job",
    "JobLocation",
    "JobStatus",
    "JobChange",
    "ChangeType",
    "ApiError",
]
