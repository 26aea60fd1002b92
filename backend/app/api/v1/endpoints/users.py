"""
User accounts: creation by administrators, listing, activation,
alumni verification and manual unlock.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.security import get_password_hash
from app.models import User, UserRole, College, SecuritySeverity
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.schemas.auth import UserResponse
from app.schemas.user import UserCreate, UserStatusUpdate, UserListResponse
from app.services import account_lock
from app.services.audit_service import log_audit, log_security_event
from app.utils.pagination import paginate
from app.utils.password_rules import validate_password

router = APIRouter(prefix="/users", tags=["Users"])

# Roles a college super admin may create inside their own college
COLLEGE_CREATABLE_ROLES = frozenset({
    UserRole.FINANCE_MANAGER,
    UserRole.HOD,
    UserRole.TEACHER,
    UserRole.STUDENT,
    UserRole.ALUMNUS,
})


async def _get_scoped_user(db: AsyncSession, user_id: str, current_user: User) -> User:
    user = await db.get(User, user_id)
    scope = college_scope(current_user)
    if not user or (scope is not None and str(user.college_id) != str(scope)):
        raise ResourceNotFoundError("User not found")
    return user


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS))
):
    college_id = payload.college_id
    if current_user.role != UserRole.SBTE_ADMIN:
        if payload.role not in COLLEGE_CREATABLE_ROLES:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden"
            )
        college_id = current_user.college_id

    is_valid, errors = validate_password(payload.password)
    if not is_valid:
        raise ValidationError("; ".join(errors), field="password")

    email = payload.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ConflictError("A user with this email already exists.")

    if college_id and not await db.get(College, college_id):
        raise ResourceNotFoundError("College not found")

    user = User(
        email=email,
        name=payload.name,
        hashed_password=get_password_hash(payload.password),
        phone=payload.phone,
        role=payload.role,
        college_id=college_id,
        department_id=payload.department_id,
        # Alumni wait for their college to vouch for them
        is_verified=payload.role != UserRole.ALUMNUS,
    )
    db.add(user)
    await db.flush()

    await log_audit(db, "CREATE", "user", user=current_user, resource_id=user.id,
                    details={"email": user.email, "role": user.role.value}, request=request)
    await db.commit()
    await db.refresh(user)

    logger.info(f"[Users] {current_user.email} created {user.email} ({user.role.value})")
    return user


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS))
):
    query = select(User)
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(User.college_id == scope)
    if role:
        query = query.where(User.role == role)

    return await paginate(db, query.order_by(User.created_at.desc()), page, page_size)


@router.patch("/{user_id}/verify", response_model=UserResponse)
async def verify_alumnus(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VERIFY_ALUMNI))
):
    user = await _get_scoped_user(db, user_id, current_user)
    if user.role != UserRole.ALUMNUS:
        raise ValidationError("Only alumni accounts require verification.")

    user.is_verified = True
    await log_audit(db, "VERIFY", "user", user=current_user, resource_id=user.id, request=request)
    await db.commit()
    await db.refresh(user)
    return user


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    payload: UserStatusUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS))
):
    user = await _get_scoped_user(db, user_id, current_user)
    if user.id == current_user.id:
        raise ValidationError("You cannot change the status of your own account.")

    user.is_active = payload.is_active
    await log_audit(db, "UPDATE", "user", user=current_user, resource_id=user.id,
                    details={"isActive": payload.is_active}, request=request)
    await db.commit()
    await db.refresh(user)
    return user


@router.post("/{user_id}/unlock", response_model=UserResponse)
async def unlock_user(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS))
):
    user = await _get_scoped_user(db, user_id, current_user)
    account_lock.unlock(user)

    await log_security_event(db, "ACCOUNT_UNLOCKED", SecuritySeverity.LOW, user=user,
                             details={"unlockedBy": current_user.email}, request=request)
    await db.commit()
    await db.refresh(user)

    logger.info(f"[Users] {current_user.email} unlocked {user.email}")
    return user
