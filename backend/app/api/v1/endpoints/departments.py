"""
Departments of a college.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import List

from app.core.database import get_db
from app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models import User, UserRole, College, Department
from app.modules.auth.access_control import Permission, require_permission, require_roles
from app.schemas.college import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    DepartmentActiveness,
    DepartmentUpdateResponse,
)
from app.services.audit_service import log_audit

router = APIRouter(prefix="/department", tags=["Departments"])


def _check_college_access(user: User, college_id: str) -> None:
    """College admins may only touch their own college"""
    if user.role == UserRole.SBTE_ADMIN:
        return
    if str(user.college_id) != str(college_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden"
        )


async def _get_department(db: AsyncSession, department_id: str) -> Department:
    department = await db.get(Department, department_id)
    if not department:
        raise ResourceNotFoundError("Department not found")
    return department


@router.post("", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    request: Request,
    payload: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_DEPARTMENTS))
):
    _check_college_access(current_user, payload.college_id)

    if not await db.get(College, payload.college_id):
        raise ResourceNotFoundError("College not found")

    department = Department(
        name=payload.name.strip(),
        college_id=payload.college_id,
        is_active=payload.is_active,
    )
    db.add(department)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A department with this name already exists in the college.")

    await log_audit(db, "CREATE", "department", user=current_user, resource_id=department.id,
                    details={"name": department.name, "collegeId": str(department.college_id)},
                    request=request)
    await db.commit()
    await db.refresh(department)

    logger.info(f"[Department] Created {department.name} for college {department.college_id}")
    return department


@router.get("/{college_id}", response_model=List[DepartmentResponse])
async def list_departments(
    college_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SBTE_ADMIN, UserRole.COLLEGE_SUPER_ADMIN))
):
    """SBTE admins see every department; college admins see active ones of their own college"""
    _check_college_access(current_user, college_id)

    query = select(Department).where(Department.college_id == college_id)
    if current_user.role == UserRole.COLLEGE_SUPER_ADMIN:
        query = query.where(Department.is_active.is_(True))

    result = await db.execute(query.order_by(Department.name))
    departments = result.scalars().all()

    if not departments:
        raise ResourceNotFoundError("No departments found for this college.")
    return departments


@router.put("/specificDepartment", response_model=DepartmentUpdateResponse)
async def update_department(
    request: Request,
    payload: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_DEPARTMENTS))
):
    if not payload.department_id or not payload.name or payload.is_active is None or not payload.college_id:
        raise ValidationError("All fields (departmentId, name, isActive, and collegeId) are required.")

    department = await _get_department(db, payload.department_id)
    _check_college_access(current_user, department.college_id)
    _check_college_access(current_user, payload.college_id)

    department.name = payload.name.strip()
    department.is_active = payload.is_active
    department.college_id = payload.college_id
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A department with this name already exists in the college.")

    await log_audit(db, "UPDATE", "department", user=current_user, resource_id=department.id,
                    details=payload.model_dump(by_alias=True), request=request)
    await db.commit()
    await db.refresh(department)

    return {"message": "Department updated successfully", "department": department}


@router.put("/updateActiveness", response_model=DepartmentUpdateResponse)
async def update_department_activeness(
    request: Request,
    payload: DepartmentActiveness,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TOGGLE_DEPARTMENTS))
):
    if not payload.department_id or payload.is_active is None:
        raise ValidationError("All fields (departmentId, and isActive) are required.")

    department = await _get_department(db, payload.department_id)
    department.is_active = payload.is_active

    await log_audit(db, "UPDATE", "department", user=current_user, resource_id=department.id,
                    details={"isActive": payload.is_active}, request=request)
    await db.commit()
    await db.refresh(department)

    logger.info(f"[Department] {department.name} active={department.is_active}")
    return {"message": "Department status updated successfully", "department": department}
