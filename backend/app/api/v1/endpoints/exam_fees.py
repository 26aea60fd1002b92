"""
Exam fees charged per student batch enrollment.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, ResourceNotFoundError
from app.core.logging_config import logger
from app.models import User, Batch, Student, StudentBatch, StudentBatchExamFee
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.modules.auth.dependencies import get_current_student
from app.schemas.finance import ExamFeeCreate, ExamFeeResponse
from app.services.audit_service import log_audit

router = APIRouter(prefix="/studentBatchExamFee", tags=["Exam Fees"])


def _fee_query():
    return (
        select(StudentBatchExamFee, Student, Batch)
        .join(StudentBatch, StudentBatchExamFee.student_batch_id == StudentBatch.id)
        .join(Student, StudentBatch.student_id == Student.id)
        .join(Batch, StudentBatch.batch_id == Batch.id)
    )


def _serialize(fee: StudentBatchExamFee, student: Student, batch: Batch) -> ExamFeeResponse:
    response = ExamFeeResponse.model_validate(fee)
    response.student_id = student.id
    response.student_name = student.name
    response.batch_id = batch.id
    response.batch_name = batch.name
    return response


@router.post("", response_model=ExamFeeResponse, status_code=status.HTTP_201_CREATED)
async def create_exam_fee(
    request: Request,
    payload: ExamFeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_EXAM_FEES))
):
    student_batch = await db.get(StudentBatch, payload.student_batch_id)
    if not student_batch:
        raise ResourceNotFoundError("StudentBatch not found")

    batch = await db.get(Batch, student_batch.batch_id)
    scope = college_scope(current_user)
    if scope is not None and str(batch.college_id) != str(scope):
        raise ResourceNotFoundError("StudentBatch not found")

    reason = payload.reason
    existing = await db.execute(
        select(StudentBatchExamFee.id).where(
            StudentBatchExamFee.student_batch_id == payload.student_batch_id,
            StudentBatchExamFee.reason == reason,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError("A record with the same reason already exists for this StudentBatch")

    fee = StudentBatchExamFee(
        student_batch_id=payload.student_batch_id,
        reason=reason,
        exam_fee=payload.exam_fee,
        due_date=payload.due_date,
        created_by=current_user.id,
    )
    db.add(fee)
    await db.flush()

    await log_audit(db, "CREATE", "exam_fee", user=current_user, resource_id=fee.id,
                    details={"reason": reason, "examFee": payload.exam_fee}, request=request)
    await db.commit()
    await db.refresh(fee)

    logger.info(f"[ExamFee] {reason} ({payload.exam_fee}) for student batch {fee.student_batch_id}")
    return fee


@router.get("", response_model=List[ExamFeeResponse])
async def list_exam_fees(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_EXAM_FEES))
):
    query = _fee_query()
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(Batch.college_id == scope)

    if batch_id:
        batch = await db.get(Batch, batch_id)
        if not batch or (scope is not None and str(batch.college_id) != str(scope)):
            raise ResourceNotFoundError("Batch not found")
        query = query.where(StudentBatch.batch_id == batch_id)

    rows = (await db.execute(query.order_by(StudentBatchExamFee.due_date))).all()
    if not rows:
        raise ResourceNotFoundError("No records found")

    return [_serialize(fee, student, batch) for fee, student, batch in rows]


@router.get("/mine", response_model=List[ExamFeeResponse])
async def list_my_exam_fees(
    db: AsyncSession = Depends(get_db),
    student: Student = Depends(get_current_student)
):
    """Fees of the signed-in student across all their batches"""
    query = _fee_query().where(Student.id == student.id)
    rows = (await db.execute(query.order_by(StudentBatchExamFee.due_date))).all()
    return [_serialize(fee, s, batch) for fee, s, batch in rows]
