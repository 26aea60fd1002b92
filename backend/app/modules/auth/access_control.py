"""
Role based access control.

Roles map to a fixed set of permissions; endpoints declare what they need
with ``Depends(require_permission(...))`` or ``Depends(require_roles(...))``.
"""

import enum
from typing import Dict, FrozenSet

from fastapi import Depends, HTTPException, status

from app.core.logging_config import logger
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_user


class Permission(str, enum.Enum):
    MANAGE_COLLEGES = "manage_colleges"
    VIEW_COLLEGES = "view_colleges"
    MANAGE_DEPARTMENTS = "manage_departments"
    TOGGLE_DEPARTMENTS = "toggle_departments"
    MANAGE_USERS = "manage_users"
    VERIFY_ALUMNI = "verify_alumni"
    MANAGE_ACADEMICS = "manage_academics"
    ENTER_MARKS = "enter_marks"
    PUBLISH_NOTIFICATIONS = "publish_notifications"
    READ_NOTIFICATIONS = "read_notifications"
    UPLOAD_LOAD_BALANCING = "upload_load_balancing"
    VIEW_LOAD_BALANCING = "view_load_balancing"
    MANAGE_EXAM_FEES = "manage_exam_fees"
    VIEW_EXAM_FEES = "view_exam_fees"
    PAY_EXAM_FEES = "pay_exam_fees"
    MANAGE_GRADE_CARDS = "manage_grade_cards"
    VIEW_GRADE_CARDS = "view_grade_cards"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    VIEW_STATISTICS = "view_statistics"
    RECORD_ATTENDANCE = "record_attendance"
    MANAGE_CERTIFICATES = "manage_certificates"


P = Permission

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.SBTE_ADMIN: frozenset({
        P.MANAGE_COLLEGES, P.VIEW_COLLEGES, P.MANAGE_DEPARTMENTS, P.TOGGLE_DEPARTMENTS,
        P.MANAGE_USERS, P.VERIFY_ALUMNI, P.PUBLISH_NOTIFICATIONS, P.READ_NOTIFICATIONS,
        P.VIEW_LOAD_BALANCING, P.VIEW_GRADE_CARDS, P.VIEW_AUDIT_LOGS, P.VIEW_STATISTICS,
    }),
    UserRole.EDUCATION_DEPARTMENT: frozenset({
        P.VIEW_COLLEGES, P.VIEW_GRADE_CARDS, P.VIEW_STATISTICS,
    }),
    UserRole.COLLEGE_SUPER_ADMIN: frozenset({
        P.VIEW_COLLEGES, P.MANAGE_DEPARTMENTS, P.MANAGE_USERS, P.VERIFY_ALUMNI,
        P.MANAGE_ACADEMICS, P.ENTER_MARKS, P.READ_NOTIFICATIONS, P.UPLOAD_LOAD_BALANCING,
        P.VIEW_LOAD_BALANCING, P.VIEW_EXAM_FEES, P.MANAGE_GRADE_CARDS, P.VIEW_GRADE_CARDS,
        P.VIEW_STATISTICS, P.RECORD_ATTENDANCE, P.MANAGE_CERTIFICATES,
    }),
    UserRole.FINANCE_MANAGER: frozenset({
        P.VIEW_COLLEGES, P.MANAGE_EXAM_FEES, P.VIEW_EXAM_FEES,
    }),
    UserRole.HOD: frozenset({
        P.VIEW_COLLEGES, P.MANAGE_ACADEMICS, P.ENTER_MARKS, P.UPLOAD_LOAD_BALANCING,
        P.VIEW_LOAD_BALANCING, P.VIEW_GRADE_CARDS, P.RECORD_ATTENDANCE,
    }),
    UserRole.TEACHER: frozenset({
        P.VIEW_COLLEGES, P.ENTER_MARKS, P.VIEW_GRADE_CARDS, P.RECORD_ATTENDANCE,
    }),
    UserRole.STUDENT: frozenset({
        P.VIEW_COLLEGES, P.PAY_EXAM_FEES, P.VIEW_GRADE_CARDS,
    }),
    UserRole.ALUMNUS: frozenset({
        P.VIEW_COLLEGES, P.VIEW_GRADE_CARDS,
    }),
}


def has_permission(role: UserRole, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def require_permission(permission: Permission):
    """Dependency factory: 403 unless the caller's role grants permission"""

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user.role, permission):
            logger.warning(
                f"[AccessControl] {current_user.email} ({current_user.role.value}) denied {permission.value}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden"
            )
        return current_user

    return checker


def require_roles(*roles: UserRole):
    """Dependency factory: 403 unless the caller has one of roles"""
    allowed = frozenset(roles)

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(
                f"[AccessControl] {current_user.email} ({current_user.role.value}) not in "
                f"{sorted(r.value for r in allowed)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden"
            )
        return current_user

    return checker


def college_scope(user: User):
    """College id the caller is confined to, or None for state-level roles"""
    if user.role in (UserRole.SBTE_ADMIN, UserRole.EDUCATION_DEPARTMENT):
        return None
    if not user.college_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is not linked to a college."
        )
    return user.college_id
