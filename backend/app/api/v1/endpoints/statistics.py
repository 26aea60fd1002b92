"""
Dashboard counters. College admins get figures for their own college.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.database import get_db
from app.models import (
    User, College, Department, Student, Notification, NotifiedCollege, Payment, PaymentStatus,
)
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.schemas.admin import StatisticsResponse

router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get("", response_model=StatisticsResponse)
async def get_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_STATISTICS))
):
    scope = college_scope(current_user)

    colleges = select(func.count(College.id))
    departments = select(func.count(Department.id))
    students = select(func.count(Student.id))
    users = select(func.count(User.id))
    notifications = select(func.count(Notification.id))
    payments = (
        select(Payment.status, func.count(Payment.id))
        .join(Student, Payment.student_id == Student.id)
        .group_by(Payment.status)
    )

    if scope is not None:
        colleges = colleges.where(College.id == scope)
        departments = departments.where(Department.college_id == scope)
        students = students.where(Student.college_id == scope)
        users = users.where(User.college_id == scope)
        notifications = (
            select(func.count(NotifiedCollege.id)).where(NotifiedCollege.college_id == scope)
        )
        payments = payments.where(Student.college_id == scope)

    payment_counts = {status: count for status, count in (await db.execute(payments)).all()}

    return StatisticsResponse(
        colleges=await db.scalar(colleges) or 0,
        departments=await db.scalar(departments) or 0,
        students=await db.scalar(students) or 0,
        users=await db.scalar(users) or 0,
        notifications=await db.scalar(notifications) or 0,
        pending_payments=payment_counts.get(PaymentStatus.PENDING, 0),
        completed_payments=payment_counts.get(PaymentStatus.COMPLETED, 0),
    )
