"""
Academic records of a college: semesters, batches, subjects, students
and exam marks. Everything except semesters is scoped to the caller's college.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models import (
    User, Semester, Batch, Subject, BatchSubject, Student, StudentBatch,
    ExamType, ExamMark, Department,
)
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.modules.auth.dependencies import get_current_user
from app.schemas.academic import (
    SemesterCreate, SemesterResponse,
    BatchCreate, BatchResponse,
    SubjectCreate, SubjectResponse,
    BatchSubjectCreate, BatchSubjectResponse,
    StudentCreate, StudentResponse,
    StudentBatchCreate, StudentBatchResponse,
    ExamTypeCreate, ExamTypeResponse,
    ExamMarksCreate, ExamMarkResponse,
)
from app.services.audit_service import log_audit

router = APIRouter(prefix="/academics", tags=["Academics"])


def _own_college(user: User) -> str:
    if not user.college_id:
        raise ValidationError("Your account is not linked to a college.")
    return user.college_id


async def _get_in_college(db: AsyncSession, model, obj_id: str, college_id: Optional[str], label: str):
    """Fetch obj_id of model, 404 if missing or owned by another college"""
    obj = await db.get(model, obj_id)
    if not obj or (college_id is not None and str(obj.college_id) != str(college_id)):
        raise ResourceNotFoundError(f"{label} not found")
    return obj


async def _get_batch_subject(db: AsyncSession, batch_subject_id: str, college_id: Optional[str]) -> BatchSubject:
    batch_subject = await db.get(BatchSubject, batch_subject_id)
    if not batch_subject:
        raise ResourceNotFoundError("Batch subject not found")
    await _get_in_college(db, Batch, batch_subject.batch_id, college_id, "Batch subject")
    return batch_subject


async def _add_unique(db: AsyncSession, obj, conflict_message: str):
    db.add(obj)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(conflict_message)
    return obj


# ============================================================================
# SEMESTERS
# ============================================================================

@router.post("/semesters", response_model=SemesterResponse, status_code=status.HTTP_201_CREATED)
async def create_semester(
    payload: SemesterCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    semester = await _add_unique(db, Semester(number=payload.number), "Semester already exists.")
    await db.commit()
    return semester


@router.get("/semesters", response_model=List[SemesterResponse])
async def list_semesters(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(select(Semester).order_by(Semester.number))
    return result.scalars().all()


# ============================================================================
# BATCHES
# ============================================================================

@router.post("/batches", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    request: Request,
    payload: BatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    college_id = _own_college(current_user)

    if not await db.get(Semester, payload.semester_id):
        raise ResourceNotFoundError("Semester not found")
    if payload.department_id:
        await _get_in_college(db, Department, payload.department_id, college_id, "Department")

    batch = Batch(college_id=college_id, **payload.model_dump())
    db.add(batch)
    await db.flush()

    await log_audit(db, "CREATE", "batch", user=current_user, resource_id=batch.id,
                    details={"name": batch.name}, request=request)
    await db.commit()
    return batch


@router.get("/batches", response_model=List[BatchResponse])
async def list_batches(
    department_id: Optional[str] = Query(None, alias="departmentId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = select(Batch)
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(Batch.college_id == scope)
    if department_id:
        query = query.where(Batch.department_id == department_id)

    result = await db.execute(query.order_by(Batch.name))
    return result.scalars().all()


@router.get("/batches/{batch_id}/subjects", response_model=List[BatchSubjectResponse])
async def list_batch_subjects(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await _get_in_college(db, Batch, batch_id, college_scope(current_user), "Batch")
    result = await db.execute(select(BatchSubject).where(BatchSubject.batch_id == batch_id))
    return result.scalars().all()


# ============================================================================
# SUBJECTS
# ============================================================================

@router.post("/subjects", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    payload: SubjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    subject = Subject(college_id=_own_college(current_user), **payload.model_dump())
    db.add(subject)
    await db.commit()
    return subject


@router.get("/subjects", response_model=List[SubjectResponse])
async def list_subjects(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = select(Subject)
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(Subject.college_id == scope)
    result = await db.execute(query.order_by(Subject.code))
    return result.scalars().all()


@router.post("/batch-subjects", response_model=BatchSubjectResponse, status_code=status.HTTP_201_CREATED)
async def assign_subject_to_batch(
    payload: BatchSubjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    college_id = _own_college(current_user)
    await _get_in_college(db, Batch, payload.batch_id, college_id, "Batch")
    await _get_in_college(db, Subject, payload.subject_id, college_id, "Subject")

    batch_subject = await _add_unique(
        db, BatchSubject(**payload.model_dump()), "Subject is already assigned to this batch."
    )
    await db.commit()
    return batch_subject


# ============================================================================
# STUDENTS
# ============================================================================

@router.post("/students", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    request: Request,
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    """Register a student, optionally enrolling them in a batch at once"""
    college_id = _own_college(current_user)

    if payload.batch_id:
        await _get_in_college(db, Batch, payload.batch_id, college_id, "Batch")
    if payload.user_id:
        linked = await db.get(User, payload.user_id)
        if not linked or str(linked.college_id) != str(college_id):
            raise ResourceNotFoundError("User not found")

    student = await _add_unique(
        db,
        Student(college_id=college_id, **payload.model_dump(exclude={"batch_id"})),
        "A student with this enrollment number already exists.",
    )
    if payload.batch_id:
        db.add(StudentBatch(student_id=student.id, batch_id=payload.batch_id))

    await log_audit(db, "CREATE", "student", user=current_user, resource_id=student.id,
                    details={"enrollmentNo": student.enrollment_no}, request=request)
    await db.commit()

    logger.info(f"[Academics] Registered student {student.enrollment_no}")
    return student


@router.get("/students", response_model=List[StudentResponse])
async def list_students(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = select(Student)
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(Student.college_id == scope)
    if batch_id:
        query = query.join(StudentBatch, StudentBatch.student_id == Student.id).where(
            StudentBatch.batch_id == batch_id
        )
    result = await db.execute(query.order_by(Student.enrollment_no))
    return result.scalars().all()


@router.post("/student-batches", response_model=StudentBatchResponse, status_code=status.HTTP_201_CREATED)
async def enroll_student(
    payload: StudentBatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    college_id = _own_college(current_user)
    await _get_in_college(db, Student, payload.student_id, college_id, "Student")
    await _get_in_college(db, Batch, payload.batch_id, college_id, "Batch")

    enrollment = await _add_unique(
        db, StudentBatch(**payload.model_dump()), "Student is already enrolled in this batch."
    )
    await db.commit()
    return enrollment


# ============================================================================
# EXAMS
# ============================================================================

@router.post("/exam-types", response_model=ExamTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_exam_type(
    payload: ExamTypeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_ACADEMICS))
):
    exam_type = ExamType(college_id=_own_college(current_user), **payload.model_dump())
    db.add(exam_type)
    await db.commit()
    await db.refresh(exam_type)
    return exam_type


@router.get("/exam-types", response_model=List[ExamTypeResponse])
async def list_exam_types(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = select(ExamType)
    scope = college_scope(current_user)
    if scope is not None:
        query = query.where(ExamType.college_id == scope)
    result = await db.execute(query.order_by(ExamType.created_at.desc()))
    return result.scalars().all()


@router.post("/exam-marks", response_model=List[ExamMarkResponse])
async def record_exam_marks(
    request: Request,
    payload: ExamMarksCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ENTER_MARKS))
):
    """Create or overwrite marks of several students for one subject and exam"""
    college_id = _own_college(current_user)
    batch_subject = await _get_batch_subject(db, payload.batch_subject_id, college_id)
    exam_type = await _get_in_college(db, ExamType, payload.exam_type_id, college_id, "Exam type")

    saved = []
    for entry in payload.marks:
        if entry.achieved_marks > exam_type.full_marks:
            raise ValidationError(
                f"Marks {entry.achieved_marks} exceed full marks {exam_type.full_marks}.",
                field="achievedMarks",
            )
        await _get_in_college(db, Student, entry.student_id, college_id, "Student")

        result = await db.execute(
            select(ExamMark).where(
                ExamMark.student_id == entry.student_id,
                ExamMark.batch_subject_id == batch_subject.id,
                ExamMark.exam_type_id == exam_type.id,
            )
        )
        mark = result.scalar_one_or_none()
        if mark:
            mark.achieved_marks = entry.achieved_marks
        else:
            mark = ExamMark(
                student_id=entry.student_id,
                batch_subject_id=batch_subject.id,
                exam_type_id=exam_type.id,
                achieved_marks=entry.achieved_marks,
            )
            db.add(mark)
        saved.append(mark)

    await db.flush()
    await log_audit(db, "RECORD_MARKS", "exam_mark", user=current_user, resource_id=batch_subject.id,
                    details={"examTypeId": str(exam_type.id), "count": len(saved)}, request=request)
    await db.commit()
    return saved


@router.get("/exam-marks", response_model=List[ExamMarkResponse])
async def list_exam_marks(
    batch_subject_id: str = Query(..., alias="batchSubjectId"),
    exam_type_id: Optional[str] = Query(None, alias="examTypeId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ENTER_MARKS))
):
    await _get_batch_subject(db, batch_subject_id, college_scope(current_user))

    query = select(ExamMark).where(ExamMark.batch_subject_id == batch_subject_id)
    if exam_type_id:
        query = query.where(ExamMark.exam_type_id == exam_type_id)
    result = await db.execute(query)
    return result.scalars().all()
