"""
Unit Tests for role based access control
Tests for: role permission table, college scoping, dependency factories
"""
import pytest
from fastapi import HTTPException

from app.models import User, UserRole
from app.modules.auth.access_control import (
    ROLE_PERMISSIONS,
    Permission,
    college_scope,
    has_permission,
    require_permission,
    require_roles,
)


def _user(role: UserRole, college_id=None) -> User:
    return User(email=f"{role.value.lower()}@sbte.gov.in", name=role.value, hashed_password="x",
                role=role, college_id=college_id)


class TestRolePermissions:

    def test_every_role_has_permissions(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    def test_only_sbte_admin_publishes_notifications(self):
        publishers = {role for role in UserRole if has_permission(role, Permission.PUBLISH_NOTIFICATIONS)}

        assert publishers == {UserRole.SBTE_ADMIN}

    def test_finance_manager_manages_exam_fees(self):
        assert has_permission(UserRole.FINANCE_MANAGER, Permission.MANAGE_EXAM_FEES)
        assert not has_permission(UserRole.FINANCE_MANAGER, Permission.MANAGE_GRADE_CARDS)

    def test_only_students_pay(self):
        payers = {role for role in UserRole if has_permission(role, Permission.PAY_EXAM_FEES)}

        assert payers == {UserRole.STUDENT}

    def test_teacher_enters_marks_but_cannot_generate_grades(self):
        assert has_permission(UserRole.TEACHER, Permission.ENTER_MARKS)
        assert not has_permission(UserRole.TEACHER, Permission.MANAGE_GRADE_CARDS)

    def test_attendance_recorded_by_college_staff(self):
        recorders = {role for role in UserRole if has_permission(role, Permission.RECORD_ATTENDANCE)}

        assert recorders == {UserRole.COLLEGE_SUPER_ADMIN, UserRole.HOD, UserRole.TEACHER}

    def test_only_college_admin_manages_certificates(self):
        managers = {role for role in UserRole if has_permission(role, Permission.MANAGE_CERTIFICATES)}

        assert managers == {UserRole.COLLEGE_SUPER_ADMIN}


class TestCollegeScope:

    @pytest.mark.parametrize("role", [UserRole.SBTE_ADMIN, UserRole.EDUCATION_DEPARTMENT])
    def test_state_roles_unscoped(self, role):
        assert college_scope(_user(role)) is None

    def test_college_user_scoped_to_own_college(self):
        assert college_scope(_user(UserRole.HOD, "c-1")) == "c-1"

    def test_college_user_without_college_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            college_scope(_user(UserRole.TEACHER))

        assert exc_info.value.status_code == 403


class TestDependencyFactories:

    @pytest.mark.asyncio
    async def test_require_permission_allows(self):
        user = _user(UserRole.SBTE_ADMIN)
        checker = require_permission(Permission.MANAGE_COLLEGES)

        assert await checker(current_user=user) is user

    @pytest.mark.asyncio
    async def test_require_permission_denies(self):
        checker = require_permission(Permission.MANAGE_COLLEGES)

        with pytest.raises(HTTPException) as exc_info:
            await checker(current_user=_user(UserRole.STUDENT, "c-1"))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Forbidden"

    @pytest.mark.asyncio
    async def test_require_roles(self):
        checker = require_roles(UserRole.SBTE_ADMIN, UserRole.COLLEGE_SUPER_ADMIN)

        await checker(current_user=_user(UserRole.COLLEGE_SUPER_ADMIN, "c-1"))
        with pytest.raises(HTTPException):
            await checker(current_user=_user(UserRole.HOD, "c-1"))
