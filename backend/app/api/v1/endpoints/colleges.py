"""
College registry.

SBTE administrators register colleges; every signed-in user may list them.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from app.core.database import get_db
from app.core.logging_config import logger
from app.models import User, UserRole, College
from app.modules.auth.access_control import require_roles
from app.modules.auth.dependencies import get_current_user
from app.schemas.college import CollegeCreate, CollegeResponse
from app.services.audit_service import log_audit

router = APIRouter(prefix="/college", tags=["Colleges"])


@router.get("", response_model=List[CollegeResponse])
async def list_colleges(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(select(College).order_by(College.name))
    return result.scalars().all()


@router.post("", response_model=CollegeResponse, status_code=status.HTTP_201_CREATED)
async def create_college(
    request: Request,
    payload: CollegeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SBTE_ADMIN))
):
    college = College(**payload.model_dump())
    db.add(college)
    await db.flush()

    await log_audit(db, "CREATE", "college", user=current_user, resource_id=college.id,
                    details={"name": college.name}, request=request)
    await db.commit()
    await db.refresh(college)

    logger.info(f"[College] Created {college.name} ({college.id})")
    return college
