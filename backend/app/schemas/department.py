"""Department-related Pydantic schemas."""
from typing import List
from pydantic import BaseModel, ConfigDict, Field


class DepartmentEntry(BaseModel):
    """Detached copy of a department held by the classifier cache."""
    id: int
    name: str
    keywords: List[str] = Field(default_factory=list)
    
    model_config = ConfigDict(from_attributes=True, frozen=True)


class DepartmentResponse(DepartmentEntry):
    pass


class KeywordsRequest(BaseModel):
    """Keywords to set on (PUT) or add to (POST) a department."""
    keywords: List[str]
