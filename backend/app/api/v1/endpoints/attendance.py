"""
Monthly attendance per batch subject.

A MonthlyBatchSubjectClass records how many theory and practical classes
were planned and held for a batch subject in a month; each enrolled student
then gets one attendance row against it. Attended counts can never exceed
the completed counts, and a month's class counts are frozen once any
attendance has been recorded against them.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional, Set, Tuple

from app.core.database import get_db
from app.core.exceptions import BatchValidationError, ConflictError, ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models import (
    User, Batch, BatchSubject, Student, StudentBatch,
    Month, MonthlyBatchSubjectClass, MonthlyBatchSubjectAttendance,
)
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.schemas.attendance import (
    MonthlyClassCreate, MonthlyClassUpdate, MonthlyClassResponse,
    AttendanceCreate, AttendanceUpdate, AttendanceResponse,
    AttendanceImportRequest,
)
from app.schemas.common import MessageResponse
from app.services.audit_service import log_audit

router = APIRouter(tags=["Attendance"])

CLASSES_PATH = "/monthlyBatchSubjectClasses"
ATTENDANCE_PATH = "/batchSubjectAttendance/monthlyBatchSubjectAttendance"

MONTH_ORDER = {month: i for i, month in enumerate(Month)}


async def _get_batch_subject(
    db: AsyncSession, batch_subject_id: str, current_user: User,
    not_found: str = "Invalid batchSubjectId: BatchSubject not found",
) -> Tuple[BatchSubject, Batch]:
    batch_subject = await db.get(BatchSubject, batch_subject_id)
    batch = await db.get(Batch, batch_subject.batch_id) if batch_subject else None
    scope = college_scope(current_user)
    if not batch or (scope is not None and str(batch.college_id) != str(scope)):
        raise ResourceNotFoundError(not_found)
    return batch_subject, batch


async def _get_monthly_class(
    db: AsyncSession, class_id: str, current_user: User, not_found: str = "Record not found",
) -> MonthlyBatchSubjectClass:
    monthly_class = await db.get(MonthlyBatchSubjectClass, class_id)
    if not monthly_class:
        raise ResourceNotFoundError(not_found)
    await _get_batch_subject(db, monthly_class.batch_subject_id, current_user, not_found=not_found)
    return monthly_class


async def _get_attendance(db: AsyncSession, attendance_id: str, current_user: User):
    attendance = await db.get(MonthlyBatchSubjectAttendance, attendance_id)
    if not attendance:
        raise ResourceNotFoundError("Attendance record not found")
    monthly_class = await _get_monthly_class(
        db, attendance.monthly_class_id, current_user, not_found="Attendance record not found"
    )
    return attendance, monthly_class


async def _enrolled_student_ids(db: AsyncSession, batch_id: str) -> Set[str]:
    result = await db.execute(select(StudentBatch.student_id).where(StudentBatch.batch_id == batch_id))
    return {str(s) for s in result.scalars().all()}


def _exceeds_completed(monthly_class: MonthlyBatchSubjectClass, theory: int, practical: int) -> bool:
    return (
        theory > (monthly_class.completed_theory_classes or 0)
        or practical > (monthly_class.completed_practical_classes or 0)
    )


# ============================================================================
# MONTHLY CLASSES
# ============================================================================

@router.post(CLASSES_PATH, response_model=MonthlyClassResponse, status_code=status.HTTP_201_CREATED)
async def create_monthly_class(
    request: Request,
    payload: MonthlyClassCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    batch_subject, _ = await _get_batch_subject(db, payload.batch_subject_id, current_user)

    existing = await db.execute(
        select(MonthlyBatchSubjectClass.id).where(
            MonthlyBatchSubjectClass.batch_subject_id == batch_subject.id,
            MonthlyBatchSubjectClass.month == payload.month,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError("Entry for this batch subject and month already exists")

    monthly_class = MonthlyBatchSubjectClass(attendances=[], **payload.model_dump())
    db.add(monthly_class)
    await db.flush()

    await log_audit(db, "CREATE", "monthly_class", user=current_user, resource_id=monthly_class.id,
                    details={"batchSubjectId": str(batch_subject.id), "month": payload.month.value},
                    request=request)
    await db.commit()

    logger.info(f"[Attendance] Classes for {payload.month.value} recorded on batch subject {batch_subject.id}")
    return monthly_class


@router.get(CLASSES_PATH)
async def list_monthly_classes(
    batch_subject_id: Optional[str] = Query(None, alias="batchSubjectId"),
    month: Optional[Month] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    query = (
        select(MonthlyBatchSubjectClass)
        .join(BatchSubject, MonthlyBatchSubjectClass.batch_subject_id == BatchSubject.id)
        .join(Batch, BatchSubject.batch_id == Batch.id)
    )
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(Batch.college_id == scope)
    if batch_subject_id:
        query = query.where(MonthlyBatchSubjectClass.batch_subject_id == batch_subject_id)
    if month:
        query = query.where(MonthlyBatchSubjectClass.month == month)

    classes = (await db.execute(query)).scalars().all()
    if not classes:
        return {"message": "No records found for MonthlyBatchSubjectClasses"}

    classes = sorted(classes, key=lambda c: (str(c.batch_subject_id), MONTH_ORDER[c.month]))
    return [MonthlyClassResponse.model_validate(c).model_dump(by_alias=True, mode="json") for c in classes]


@router.get(CLASSES_PATH + "/{class_id}", response_model=MonthlyClassResponse)
async def get_monthly_class(
    class_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    return await _get_monthly_class(db, class_id, current_user)


@router.put(CLASSES_PATH + "/{class_id}", response_model=MonthlyClassResponse)
async def update_monthly_class(
    class_id: str,
    request: Request,
    payload: MonthlyClassUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    monthly_class = await _get_monthly_class(db, class_id, current_user)
    if monthly_class.attendances:
        raise ConflictError("Cannot update classes as attendance records exist for this batch subject.")

    changes = payload.model_dump(exclude_unset=True)
    for kind in ("theory", "practical"):
        total = changes.get(f"total_{kind}_classes", getattr(monthly_class, f"total_{kind}_classes"))
        completed = changes.get(f"completed_{kind}_classes", getattr(monthly_class, f"completed_{kind}_classes"))
        if total is not None and completed is not None and completed > total:
            raise ValidationError(
                f"Completed {kind} classes cannot exceed total {kind} classes.",
                field=f"completed{kind.capitalize()}Classes",
            )

    for field, value in changes.items():
        setattr(monthly_class, field, value)

    await log_audit(db, "UPDATE", "monthly_class", user=current_user, resource_id=monthly_class.id,
                    details=changes, request=request)
    await db.commit()
    return monthly_class


@router.delete(CLASSES_PATH + "/{class_id}", response_model=MessageResponse)
async def delete_monthly_class(
    class_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    """Deletes the month together with its attendance rows"""
    monthly_class = await _get_monthly_class(db, class_id, current_user)

    await db.delete(monthly_class)
    await log_audit(db, "DELETE", "monthly_class", user=current_user, resource_id=class_id,
                    details={"month": monthly_class.month.value}, request=request)
    await db.commit()
    return {"message": "Record deleted successfully"}


# ============================================================================
# ATTENDANCE
# ============================================================================

@router.post(CLASSES_PATH + "/{class_id}/monthlyBatchSubjectAttendance", response_model=AttendanceResponse,
             status_code=status.HTTP_201_CREATED)
async def record_attendance(
    class_id: str,
    payload: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    monthly_class = await _get_monthly_class(db, class_id, current_user)
    batch_subject = await db.get(BatchSubject, monthly_class.batch_subject_id)

    if not await db.get(Student, payload.student_id):
        raise ResourceNotFoundError("Invalid studentId: Student not found")
    if payload.student_id not in await _enrolled_student_ids(db, batch_subject.batch_id):
        raise ValidationError("Student does not belong to the batch.", field="studentId")
    if _exceeds_completed(monthly_class, payload.attended_theory_classes, payload.attended_practical_classes):
        raise ValidationError("Attended classes cannot exceed the completed classes for theory or practical.")
    if any(str(a.student_id) == payload.student_id for a in monthly_class.attendances):
        raise ConflictError("Attendance record already exists for this student")

    attendance = MonthlyBatchSubjectAttendance(monthly_class_id=monthly_class.id, **payload.model_dump())
    monthly_class.attendances.append(attendance)
    await db.commit()
    return attendance


@router.get(CLASSES_PATH + "/{class_id}/monthlyBatchSubjectAttendance")
async def list_attendance(
    class_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    monthly_class = await _get_monthly_class(db, class_id, current_user)

    result = await db.execute(
        select(MonthlyBatchSubjectAttendance)
        .join(Student, MonthlyBatchSubjectAttendance.student_id == Student.id)
        .where(MonthlyBatchSubjectAttendance.monthly_class_id == monthly_class.id)
        .order_by(Student.enrollment_no)
    )
    attendances = result.scalars().all()
    if not attendances:
        return {"message": "No attendance records found"}
    return [AttendanceResponse.model_validate(a).model_dump(by_alias=True, mode="json") for a in attendances]


@router.post(ATTENDANCE_PATH + "/import", status_code=status.HTTP_201_CREATED)
async def import_attendance(
    request: Request,
    payload: AttendanceImportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    """Record a month's attendance for many students, keyed by enrollment number"""
    monthly_class = await _get_monthly_class(db, payload.monthly_class_id, current_user)
    batch_subject = await db.get(BatchSubject, monthly_class.batch_subject_id)
    enrolled = await _enrolled_student_ids(db, batch_subject.batch_id)

    enrollment_nos = [row.enrollment_no for row in payload.rows]
    result = await db.execute(select(Student).where(Student.enrollment_no.in_(enrollment_nos)))
    students = {s.enrollment_no: s for s in result.scalars().all()}
    recorded = {str(a.student_id) for a in monthly_class.attendances}

    errors: List[str] = []
    seen = set()
    for row in payload.rows:
        student = students.get(row.enrollment_no)
        if row.enrollment_no in seen:
            errors.append(f"Duplicate row for enrollment number {row.enrollment_no}")
        elif not student or str(student.id) not in enrolled:
            errors.append(f"Student not enrolled in this batch: {row.enrollment_no}")
        elif str(student.id) in recorded:
            errors.append(f"Attendance already recorded for student {row.enrollment_no}")
        elif _exceeds_completed(monthly_class, row.attended_theory_classes, row.attended_practical_classes):
            errors.append(f"Attended classes exceed completed classes for student {row.enrollment_no}")
        seen.add(row.enrollment_no)

    if errors:
        raise BatchValidationError("Attendance could not be imported.", errors)

    for row in payload.rows:
        monthly_class.attendances.append(MonthlyBatchSubjectAttendance(
            monthly_class_id=monthly_class.id,
            student_id=students[row.enrollment_no].id,
            attended_theory_classes=row.attended_theory_classes,
            attended_practical_classes=row.attended_practical_classes,
        ))

    await db.flush()
    await log_audit(db, "IMPORT_ATTENDANCE", "monthly_class", user=current_user, resource_id=monthly_class.id,
                    details={"count": len(payload.rows)}, request=request)
    await db.commit()

    logger.info(f"[Attendance] Imported {len(payload.rows)} rows for {monthly_class.month.value}")
    return {
        "message": "Attendance records imported successfully.",
        "successCount": len(payload.rows),
    }


@router.get(ATTENDANCE_PATH + "/{attendance_id}", response_model=AttendanceResponse)
async def get_attendance(
    attendance_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RECORD_ATTENDANCE))
):
    attendance, _ = await _get_attendance(db, attendance_id, current_user)
    return attendance


@router.put(ATTENDANCE_PATH + "/{attendance_id}", response_model=AttendanceResponse)
async def update_attendance(
    attendance_id: str,
    request: Request,
    payload: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    attendance, monthly_class = await _get_attendance(db, attendance_id, current_user)

    for kind in ("theory", "practical"):
        attended = getattr(payload, f"attended_{kind}_classes")
        completed = getattr(monthly_class, f"completed_{kind}_classes")
        if attended is not None and completed is not None and attended > completed:
            raise ValidationError(
                f"Attended {kind} classes cannot exceed completed {kind} classes of {completed}.",
                field=f"attended{kind.capitalize()}Classes",
            )

    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is not None:
            setattr(attendance, field, value)

    await log_audit(db, "UPDATE", "attendance", user=current_user, resource_id=attendance.id,
                    details=changes, request=request)
    await db.commit()
    return attendance


@router.delete(ATTENDANCE_PATH + "/{attendance_id}", response_model=MessageResponse)
async def delete_attendance(
    attendance_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    attendance, monthly_class = await _get_attendance(db, attendance_id, current_user)

    monthly_class.attendances.remove(attendance)
    await log_audit(db, "DELETE", "attendance", user=current_user, resource_id=attendance_id, request=request)
    await db.commit()
    return {"message": "Attendance record deleted successfully"}
