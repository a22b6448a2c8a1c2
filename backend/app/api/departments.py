"""
Department endpoints.
Lists the department taxonomy and manages the classifier keywords.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_secret
from app.database import get_db
from app.schemas.department import DepartmentResponse, KeywordsRequest
from app.services.department_classifier import (
    add_department_keywords,
    list_departments,
    update_department_keywords,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[DepartmentResponse])
async def get_departments(db: AsyncSession = Depends(get_db)):
    """List departments in classifier order."""
    return await list_departments(db)


@router.put("/{department_id}/keywords", response_model=DepartmentResponse)
async def replace_keywords(
    department_id: int,
    body: KeywordsRequest,
    request: Request,
    _: None = Depends(require_secret),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace a department's keywords.

    Returns:
        200: Updated department
        404: Department not found
    """
    try:
        department = await update_department_keywords(
            db, request.app.state.department_cache, department_id, body.keywords
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DepartmentResponse.model_validate(department)


@router.post("/{department_id}/keywords", response_model=DepartmentResponse)
async def append_keywords(
    department_id: int,
    body: KeywordsRequest,
    request: Request,
    _: None = Depends(require_secret),
    db: AsyncSession = Depends(get_db)
):
    """Add keywords to a department, keeping the existing ones."""
    try:
        department = await add_department_keywords(
            db, request.app.state.department_cache, department_id, body.keywords
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DepartmentResponse.model_validate(department)
