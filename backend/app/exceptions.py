"""
Error taxonomy for the ingestion pipeline.

Scope decides how an error propagates:
- MalformedPostingError: one posting, skipped with a log entry
- UpstreamError / PersistenceError: one employer, recorded and skipped
- ConfigurationError: the whole cycle
"""
from typing import Optional


class JobTrackerError(Exception):
    """Base class for pipeline errors"""
    pass


class UpstreamError(JobTrackerError):
    """Raised when an ATS API fails (non-2xx, timeout, unreadable payload)"""
    
    def __init__(
        self,
        source_kind: str,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None
    ):
        super().__init__(message)
        self.source_kind = source_kind
        self.message = message
        self.status = status
        self.body = body
    
    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.source_kind} API returned {self.status}: {self.message}"
        return f"{self.source_kind} API error: {self.message}"


class MalformedPostingError(JobTrackerError):
    """Raised when a single posting lacks a required field"""
    
    def __init__(self, source_kind: str, message: str):
        super().__init__(message)
        self.source_kind = source_kind
        self.message = message


class PersistenceError(JobTrackerError):
    """Raised when a storage write fails for an employer"""
    pass


class ConfigurationError(JobTrackerError):
    """Raised when required settings or secrets are missing"""
    pass
