"""
Semester grade cards.

Workflow for a batch:
1. /importInternal records internal marks (out of 30) per subject,
   creating each student's card on first use
2. /calculateExternal scales the semester exam to 70 marks
3. /generateGradeDetails assigns grades and computes GPA/CGPA

Steps 2 and 3 collect every problem first and write nothing if any is found.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Dict, List, Optional

from app.core.database import get_db
from app.core.exceptions import BatchValidationError, ResourceNotFoundError
from app.core.logging_config import logger
from app.models import (
    User, UserRole, College, Batch, BatchSubject, Subject, Semester, Student, StudentBatch,
    ExamType, ExamMark, StudentGradeCard, SubjectGradeDetail,
)
from app.modules.auth.access_control import Permission, require_permission, college_scope
from app.schemas.common import MessageResponse
from app.schemas.grade_card import ImportInternalRequest, BatchRequest, GradeCardResponse
from app.services import grade_service
from app.services.audit_service import log_audit
from app.services.grade_card_pdf import GradeCardDocument, GradeRow, grade_card_pdf

router = APIRouter(prefix="/gradeCard", tags=["Grade Cards"])

OWN_CARD_ROLES = (UserRole.STUDENT, UserRole.ALUMNUS)


def _label(name: str, code: str) -> str:
    return f"{name}-{code}"


async def _get_batch(db: AsyncSession, batch_id: str, current_user: User) -> Batch:
    batch = await db.get(Batch, batch_id)
    scope = college_scope(current_user)
    if not batch or (scope is not None and str(batch.college_id) != str(scope)):
        raise ResourceNotFoundError("Batch not found")
    return batch


async def _batch_subjects(db: AsyncSession, batch_id: str):
    """(BatchSubject, Subject) pairs of a batch"""
    result = await db.execute(
        select(BatchSubject, Subject)
        .join(Subject, BatchSubject.subject_id == Subject.id)
        .where(BatchSubject.batch_id == batch_id)
        .order_by(Subject.code)
    )
    return result.all()


async def _own_student_id(db: AsyncSession, current_user: User) -> Optional[str]:
    result = await db.execute(select(Student.id).where(Student.user_id == current_user.id))
    return result.scalar_one_or_none()


async def _get_visible_card(db: AsyncSession, card_id: str, current_user: User) -> StudentGradeCard:
    card = await db.get(StudentGradeCard, card_id)
    if not card:
        raise ResourceNotFoundError("Grade card not found")

    if current_user.role in OWN_CARD_ROLES:
        if str(card.student_id) != str(await _own_student_id(db, current_user)):
            raise ResourceNotFoundError("Grade card not found")
        return card

    scope = college_scope(current_user)
    if scope is not None:
        student = await db.get(Student, card.student_id)
        if str(student.college_id) != str(scope):
            raise ResourceNotFoundError("Grade card not found")
    return card


# ============================================================================
# MARKS PIPELINE
# ============================================================================

@router.post("/importInternal", status_code=status.HTTP_201_CREATED)
async def import_internal_marks(
    request: Request,
    payload: ImportInternalRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ENTER_MARKS))
):
    """Record internal marks of one batch subject, keyed by enrollment number"""
    batch_subject = await db.get(BatchSubject, payload.batch_subject_id)
    if not batch_subject:
        raise ResourceNotFoundError("Invalid batch subject ID.")
    batch = await _get_batch(db, batch_subject.batch_id, current_user)
    subject = await db.get(Subject, batch_subject.subject_id)
    semester = await db.get(Semester, batch.semester_id)

    enrollment_nos = [entry.enrollment_no for entry in payload.marks]
    result = await db.execute(
        select(Student).where(Student.enrollment_no.in_(enrollment_nos), Student.college_id == batch.college_id)
    )
    students = {s.enrollment_no: s for s in result.scalars().all()}

    result = await db.execute(
        select(StudentGradeCard).where(
            StudentGradeCard.batch_id == batch.id,
            StudentGradeCard.semester_id == semester.id,
        )
    )
    cards = {str(card.student_id): card for card in result.scalars().all()}
    taken_numbers = {card.card_no for card in cards.values()}

    errors = []
    seen = set()
    for entry in payload.marks:
        student = students.get(entry.enrollment_no)
        if entry.enrollment_no in seen:
            errors.append(f"Duplicate row for enrollment number {entry.enrollment_no}")
        elif not student:
            errors.append(f"Student not found in the system: {entry.enrollment_no}")
        else:
            card = cards.get(str(student.id))
            if card and any(str(d.batch_subject_id) == str(batch_subject.id) for d in card.subject_grades):
                errors.append(f"Internal marks already exist for student {entry.enrollment_no}.")
        seen.add(entry.enrollment_no)

    if errors:
        raise BatchValidationError("Internal marks could not be imported.", errors)

    for entry in payload.marks:
        student = students[entry.enrollment_no]
        card = cards.get(str(student.id))
        if not card:
            card = StudentGradeCard(
                student_id=student.id,
                batch_id=batch.id,
                semester_id=semester.id,
                card_no=grade_service.next_card_number(student.enrollment_no, semester.number, taken_numbers),
                subject_grades=[],
            )
            db.add(card)
            cards[str(student.id)] = card
        card.subject_grades.append(SubjectGradeDetail(
            batch_subject_id=batch_subject.id,
            credit=subject.credit,
            internal_marks=entry.internal_marks,
        ))

    await db.flush()
    await log_audit(db, "IMPORT_INTERNAL", "grade_card", user=current_user, resource_id=batch_subject.id,
                    details={"count": len(payload.marks)}, request=request)
    await db.commit()

    logger.info(f"[GradeCard] Imported {len(payload.marks)} internal marks for {subject.code} in batch {batch.name}")
    return {
        "message": f"Successfully imported {len(payload.marks)} records.",
        "successCount": len(payload.marks),
    }


@router.post("/calculateExternal", response_model=MessageResponse)
async def calculate_external_marks(
    request: Request,
    payload: BatchRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_GRADE_CARDS))
):
    """Scale the latest semester exam of each subject to the 70-mark external component"""
    batch = await _get_batch(db, payload.batch_id, current_user)

    subjects = await _batch_subjects(db, batch.id)
    if not subjects:
        raise ResourceNotFoundError("No subjects found for this batch.")

    result = await db.execute(
        select(ExamType)
        .where(ExamType.college_id == batch.college_id, ExamType.name.ilike("%semester%"))
        .order_by(ExamType.created_at.desc())
        .limit(1)
    )
    exam_type = result.scalar_one_or_none()
    if not exam_type:
        raise BatchValidationError(
            "Errors occurred during external marks calculation.",
            ["No semester exam type found for this college."],
        )

    result = await db.execute(
        select(StudentGradeCard).where(
            StudentGradeCard.batch_id == batch.id,
            StudentGradeCard.semester_id == batch.semester_id,
        )
    )
    cards = {str(card.student_id): card for card in result.scalars().all()}

    result = await db.execute(
        select(Student)
        .join(StudentBatch, StudentBatch.student_id == Student.id)
        .where(StudentBatch.batch_id == batch.id)
        .order_by(Student.enrollment_no)
    )
    enrolled = result.scalars().all()

    errors: List[str] = []
    updates = []
    for batch_subject, subject in subjects:
        result = await db.execute(
            select(ExamMark, Student)
            .join(Student, ExamMark.student_id == Student.id)
            .where(ExamMark.batch_subject_id == batch_subject.id, ExamMark.exam_type_id == exam_type.id)
        )
        marks = result.all()
        if not marks:
            errors.append(f"No {exam_type.name} marks found for subject {_label(subject.name, subject.code)}")
            continue

        marked = {str(student.id) for _, student in marks}
        for student in enrolled:
            if str(student.id) not in marked:
                errors.append(
                    f"Missing {exam_type.name} marks for student {_label(student.name, student.enrollment_no)} "
                    f"in subject {_label(subject.name, subject.code)}"
                )

        for mark, student in marks:
            card = cards.get(str(student.id))
            if not card:
                errors.append(f"Grade card not found for student {_label(student.name, student.enrollment_no)}")
                continue
            detail = next(
                (d for d in card.subject_grades if str(d.batch_subject_id) == str(batch_subject.id)), None
            )
            if not detail or detail.internal_marks is None:
                errors.append(
                    f"Internal marks missing for student {_label(student.name, student.enrollment_no)} "
                    f"in subject {_label(subject.name, subject.code)}"
                )
                continue
            updates.append((detail, grade_service.scale_external(mark.achieved_marks, exam_type.full_marks)))

    if errors:
        raise BatchValidationError("Errors occurred during external marks calculation.", errors)

    for detail, external in updates:
        detail.external_marks = external

    await log_audit(db, "CALCULATE_EXTERNAL", "grade_card", user=current_user, resource_id=batch.id,
                    details={"examTypeId": str(exam_type.id), "updated": len(updates)}, request=request)
    await db.commit()

    logger.info(f"[GradeCard] External marks updated for {len(updates)} subject rows in batch {batch.name}")
    return {"message": "External marks updated successfully."}


@router.post("/generateGradeDetails", response_model=MessageResponse)
async def generate_grade_details(
    request: Request,
    payload: BatchRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_GRADE_CARDS))
):
    """Grade every subject row, then GPA and CGPA for every card of the batch"""
    batch = await _get_batch(db, payload.batch_id, current_user)
    semester = await db.get(Semester, batch.semester_id)

    result = await db.execute(
        select(StudentGradeCard, Student)
        .join(Student, StudentGradeCard.student_id == Student.id)
        .where(StudentGradeCard.batch_id == batch.id, StudentGradeCard.semester_id == semester.id)
    )
    rows = result.all()
    if not rows:
        raise ResourceNotFoundError("No student grade cards found for this batch.")

    subjects: Dict[str, tuple] = {
        str(bs.id): (bs, subject) for bs, subject in await _batch_subjects(db, batch.id)
    }

    errors: List[str] = []
    graded = []
    for card, student in rows:
        results = []
        for detail in card.subject_grades:
            batch_subject, subject = subjects[str(detail.batch_subject_id)]
            if detail.internal_marks is None or detail.external_marks is None:
                errors.append(
                    f"Missing internal or external marks for student {_label(student.name, student.enrollment_no)} "
                    f"in subject {_label(subject.name, subject.code)}"
                )
                continue
            results.append((detail, grade_service.grade_subject(
                detail.internal_marks, detail.external_marks, detail.credit, batch_subject.class_type
            )))
        graded.append((card, results))

    if errors:
        raise BatchValidationError("Errors occurred during grade generation.", errors)

    for card, results in graded:
        for detail, outcome in results:
            detail.grade = outcome.grade
            detail.grade_point = outcome.grade_point
            detail.quality_point = outcome.quality_point

        totals = grade_service.semester_totals(outcome for _, outcome in results)
        card.total_graded_credit = totals.total_credit
        card.total_quality_point = totals.total_quality_point
        card.gpa = totals.gpa

        previous = []
        if semester.number > 1:
            result = await db.execute(
                select(StudentGradeCard.total_graded_credit, StudentGradeCard.total_quality_point)
                .join(Semester, StudentGradeCard.semester_id == Semester.id)
                .where(StudentGradeCard.student_id == card.student_id, Semester.number < semester.number)
            )
            previous = result.all()
        card.cgpa = grade_service.cumulative_gpa(totals, previous)

    await log_audit(db, "GENERATE_GRADES", "grade_card", user=current_user, resource_id=batch.id,
                    details={"cards": len(graded)}, request=request)
    await db.commit()

    logger.info(f"[GradeCard] Generated grades for {len(graded)} cards in batch {batch.name}")
    return {"message": "Grade details generated successfully."}


# ============================================================================
# READ
# ============================================================================

@router.get("", response_model=List[GradeCardResponse])
async def list_grade_cards(
    student_id: Optional[str] = Query(None, alias="studentId"),
    semester_id: Optional[str] = Query(None, alias="semesterId"),
    batch_id: Optional[str] = Query(None, alias="batchId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_GRADE_CARDS))
):
    """Students and alumni only ever see their own cards"""
    query = select(StudentGradeCard).join(Student, StudentGradeCard.student_id == Student.id)

    if current_user.role in OWN_CARD_ROLES:
        own_id = await _own_student_id(db, current_user)
        if not own_id:
            return []
        query = query.where(StudentGradeCard.student_id == own_id)
    else:
        scope = college_scope(current_user)
        if scope is not None:
            query = query.where(Student.college_id == scope)
        if student_id:
            query = query.where(StudentGradeCard.student_id == student_id)

    if semester_id:
        query = query.where(StudentGradeCard.semester_id == semester_id)
    if batch_id:
        query = query.where(StudentGradeCard.batch_id == batch_id)

    result = await db.execute(query.order_by(StudentGradeCard.card_no))
    return result.scalars().all()


@router.get("/{card_id}", response_model=GradeCardResponse)
async def get_grade_card(
    card_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_GRADE_CARDS))
):
    return await _get_visible_card(db, card_id, current_user)


@router.get("/{card_id}/pdf")
async def download_grade_card_pdf(
    card_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_GRADE_CARDS))
):
    card = await _get_visible_card(db, card_id, current_user)
    if card.gpa is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Grades have not been generated for this card yet."
        )

    student = await db.get(Student, card.student_id)
    batch = await db.get(Batch, card.batch_id)
    semester = await db.get(Semester, card.semester_id)
    college = await db.get(College, student.college_id)
    subjects = {str(bs.id): subject for bs, subject in await _batch_subjects(db, card.batch_id)}

    rows = []
    for detail in card.subject_grades:
        subject = subjects.get(str(detail.batch_subject_id))
        rows.append(GradeRow(
            subject_code=subject.code if subject else "-",
            subject_name=subject.name if subject else "-",
            credit=detail.credit,
            internal_marks=detail.internal_marks,
            external_marks=detail.external_marks,
            grade=detail.grade,
            grade_point=detail.grade_point,
        ))
    rows.sort(key=lambda r: r.subject_code)

    document = GradeCardDocument(
        card_no=card.card_no,
        student_name=student.name,
        enrollment_no=student.enrollment_no,
        college_name=college.name if college else "",
        semester_number=semester.number,
        batch_name=batch.name,
        rows=rows,
        total_credit=card.total_graded_credit,
        total_quality_point=card.total_quality_point,
        gpa=card.gpa,
        cgpa=card.cgpa,
    )
    content = grade_card_pdf.render(document)

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )
