"""
Alumni: public self-registration and the college's view of its alumni.

A self-registered alumnus cannot log in until a college admin verifies
the account through PATCH /api/users/{id}/verify.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.rate_limiter import limiter
from app.core.security import get_password_hash
from app.models import User, UserRole, College, Department, AlumnusProfile
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.schemas.alumni import (
    AlumnusRegistration,
    AlumnusRegistrationResponse,
    AlumnusResponse,
    AlumniListResponse,
)
from app.services.audit_service import log_audit
from app.utils.captcha import validate_captcha
from app.utils.pagination import paginate
from app.utils.password_rules import validate_password

router = APIRouter(tags=["Alumni"])


def _serialize(profile: AlumnusProfile) -> AlumnusResponse:
    return AlumnusResponse(
        user_id=profile.user_id,
        name=profile.user.name,
        email=profile.user.email,
        is_verified=profile.user.is_verified,
        college_id=profile.college_id,
        department_id=profile.department_id,
        graduation_year=profile.graduation_year,
        job_status=profile.job_status,
        current_employer=profile.current_employer,
        current_position=profile.current_position,
        industry=profile.industry,
        linked_in_profile=profile.linked_in_profile,
        created_at=profile.created_at,
    )


@router.post("/register-alumni", response_model=AlumnusRegistrationResponse,
             status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register_alumnus(
    request: Request,
    payload: AlumnusRegistration,
    db: AsyncSession = Depends(get_db)
):
    """Create an unverified ALUMNUS account with its career profile"""
    if not validate_captcha(payload.captcha_answer, payload.captcha_hash, payload.captcha_expires_at):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired captcha"
        )

    is_valid, errors = validate_password(payload.password)
    if not is_valid:
        raise ValidationError("; ".join(errors), field="password")

    email = payload.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ConflictError("A user with this email already exists.")

    if not await db.get(College, payload.college_id):
        raise ResourceNotFoundError("College not found")
    if payload.department_id:
        department = await db.get(Department, payload.department_id)
        if not department or str(department.college_id) != str(payload.college_id):
            raise ResourceNotFoundError("Department not found")

    user = User(
        email=email,
        name=payload.name.strip(),
        hashed_password=get_password_hash(payload.password),
        phone=payload.phone,
        role=UserRole.ALUMNUS,
        college_id=payload.college_id,
        department_id=payload.department_id,
        is_verified=False,
    )
    db.add(user)
    await db.flush()

    db.add(AlumnusProfile(
        user=user,
        **payload.model_dump(exclude={
            "email", "password", "name", "phone", "captcha_answer", "captcha_hash", "captcha_expires_at",
        }),
    ))
    await log_audit(db, "REGISTER", "alumnus", user=user, resource_id=user.id,
                    details={"collegeId": str(payload.college_id), "graduationYear": payload.graduation_year},
                    request=request)
    await db.commit()

    logger.info(f"[Alumni] {email} registered, awaiting verification")
    return AlumnusRegistrationResponse(message="Alumnus registered successfully", user_id=user.id)


@router.get("/alumni", response_model=AlumniListResponse)
async def list_alumni(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    verified: Optional[bool] = None,
    graduation_year: Optional[int] = Query(None, alias="graduationYear"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VERIFY_ALUMNI))
):
    """Alumni profiles of the caller's college; SBTE admins see every college"""
    query = select(AlumnusProfile).join(User, AlumnusProfile.user_id == User.id)
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(AlumnusProfile.college_id == scope)
    if verified is not None:
        query = query.where(User.is_verified.is_(verified))
    if graduation_year:
        query = query.where(AlumnusProfile.graduation_year == graduation_year)

    page_data = await paginate(db, query.order_by(AlumnusProfile.created_at.desc()), page, page_size)
    page_data["items"] = [_serialize(p) for p in page_data["items"]]
    return page_data
