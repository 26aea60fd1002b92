"""
Certificates: the types a college issues and their assignment to students.

An assigned certificate starts with payment PENDING and no issue date; the
college sets both once the student has paid and the document is handed over.
"""
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from app.core.database import get_db
from app.core.exceptions import AuthorizationError, ConflictError, ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models import User, UserRole, Student, Certificate, CertificateType, CertificatePaymentStatus
from app.modules.auth.access_control import Permission, require_permission
from app.modules.auth.dependencies import get_current_user
from app.schemas.certificate import (
    CertificateTypeCreate, CertificateTypeResponse,
    CertificateAssign, CertificateBulkAssign, CertificateUpdate, CertificateResponse,
)
from app.schemas.common import MessageResponse
from app.services.audit_service import log_audit

router = APIRouter(tags=["Certificates"])

manage_certificates = require_permission(Permission.MANAGE_CERTIFICATES)


def _own_college(user: User) -> str:
    if not user.college_id:
        raise ValidationError("User is not associated with a college")
    return user.college_id


def _serialize(certificate: Certificate) -> dict:
    return CertificateResponse(
        id=certificate.id,
        student_id=certificate.student_id,
        certificate_type_id=certificate.certificate_type_id,
        certificate_type_name=certificate.certificate_type.name if certificate.certificate_type else None,
        issue_date=certificate.issue_date,
        payment_status=certificate.payment_status,
        created_at=certificate.created_at,
    ).model_dump(by_alias=True, mode="json")


async def _get_type(db: AsyncSession, type_id: str, college_id: str) -> CertificateType:
    certificate_type = await db.get(CertificateType, type_id)
    if not certificate_type or str(certificate_type.college_id) != str(college_id):
        raise ResourceNotFoundError(f"Certificate type with ID {type_id} does not exist.")
    return certificate_type


async def _get_certificate(db: AsyncSession, certificate_id: str, college_id: str) -> Certificate:
    result = await db.execute(
        select(Certificate)
        .join(CertificateType, Certificate.certificate_type_id == CertificateType.id)
        .where(Certificate.id == certificate_id, CertificateType.college_id == college_id)
    )
    certificate = result.scalar_one_or_none()
    if not certificate:
        raise ResourceNotFoundError("Certificate not found or does not belong to your college")
    return certificate


# ============================================================================
# CERTIFICATE TYPES
# ============================================================================

@router.post("/certificateType", response_model=CertificateTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_certificate_type(
    request: Request,
    payload: CertificateTypeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    college_id = _own_college(current_user)
    name = payload.name.strip()

    existing = await db.execute(
        select(CertificateType.id).where(CertificateType.college_id == college_id, CertificateType.name == name)
    )
    if existing.scalar_one_or_none():
        raise ConflictError("Certificate type already exists for this college")

    certificate_type = CertificateType(name=name, college_id=college_id, certificates=[])
    db.add(certificate_type)
    await db.flush()
    await log_audit(db, "CREATE", "certificate_type", user=current_user, resource_id=certificate_type.id,
                    details={"name": name}, request=request)
    await db.commit()

    return CertificateTypeResponse(
        id=certificate_type.id, name=name, college_id=college_id, created_at=certificate_type.created_at,
    )


@router.get("/certificateType", response_model=List[CertificateTypeResponse])
async def list_certificate_types(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    """Types of the caller's college with how many certificates each has"""
    result = await db.execute(
        select(CertificateType)
        .where(CertificateType.college_id == _own_college(current_user))
        .order_by(CertificateType.name)
    )
    return [
        CertificateTypeResponse(
            id=t.id, name=t.name, college_id=t.college_id, certificates=len(t.certificates), created_at=t.created_at,
        )
        for t in result.scalars().all()
    ]


@router.delete("/certificateType/{type_id}", response_model=MessageResponse)
async def delete_certificate_type(
    type_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    certificate_type = await _get_type(db, type_id, _own_college(current_user))
    if certificate_type.certificates:
        raise ConflictError("Certificate type is assigned to students and cannot be deleted")

    await db.delete(certificate_type)
    await log_audit(db, "DELETE", "certificate_type", user=current_user, resource_id=type_id,
                    details={"name": certificate_type.name}, request=request)
    await db.commit()
    return {"message": "Certificate type deleted successfully"}


# ============================================================================
# ISSUANCE
# ============================================================================

@router.post("/certificateIssuance/singleStudent", status_code=status.HTTP_201_CREATED)
async def assign_certificate(
    request: Request,
    payload: CertificateAssign,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    college_id = _own_college(current_user)

    student = await db.get(Student, payload.student_id)
    if not student or str(student.college_id) != str(college_id):
        raise ResourceNotFoundError(f"Student with ID {payload.student_id} does not exist.")
    certificate_type = await _get_type(db, payload.certificate_type_id, college_id)

    if any(str(c.student_id) == str(student.id) for c in certificate_type.certificates):
        raise ConflictError("Certificate is already assigned to student.")

    certificate = Certificate(student_id=student.id, payment_status=CertificatePaymentStatus.PENDING)
    certificate_type.certificates.append(certificate)
    await db.flush()
    await log_audit(db, "ASSIGN", "certificate", user=current_user, resource_id=certificate.id,
                    details={"studentId": str(student.id), "certificateType": certificate_type.name},
                    request=request)
    await db.commit()

    logger.info(f"[Certificates] {certificate_type.name} assigned to {student.enrollment_no}")
    return {"message": "Certificate assigned successfully", "certificate": _serialize(certificate)}


@router.post("/certificateIssuance/multipleStudents", status_code=status.HTTP_201_CREATED)
async def assign_certificates(
    request: Request,
    response: Response,
    payload: CertificateBulkAssign,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    """Assign one type to many students, skipping those who already have it"""
    college_id = _own_college(current_user)
    certificate_type = await _get_type(db, payload.certificate_type_id, college_id)

    student_ids = list(dict.fromkeys(payload.student_ids))
    result = await db.execute(
        select(Student.id).where(Student.id.in_(student_ids), Student.college_id == college_id)
    )
    if len(result.scalars().all()) != len(student_ids):
        raise ResourceNotFoundError("One or more students not found or unauthorized")

    holders = {str(c.student_id) for c in certificate_type.certificates}
    already_assigned = [s for s in student_ids if s in holders]
    new_ids = [s for s in student_ids if s not in holders]

    if not new_ids:
        response.status_code = status.HTTP_200_OK
        return {
            "message": "All selected students already have this certificate",
            "alreadyAssignedStudentIds": already_assigned,
        }

    for student_id in new_ids:
        certificate_type.certificates.append(
            Certificate(student_id=student_id, payment_status=CertificatePaymentStatus.PENDING)
        )
    await db.flush()
    await log_audit(db, "ASSIGN", "certificate", user=current_user, resource_id=certificate_type.id,
                    details={"certificateType": certificate_type.name, "created": len(new_ids)}, request=request)
    await db.commit()

    logger.info(f"[Certificates] {certificate_type.name} assigned to {len(new_ids)} students")
    return {
        "message": "Certificates assigned successfully",
        "created": len(new_ids),
        "alreadyAssignedStudentIds": already_assigned,
    }


@router.get("/certificateIssuance/singleStudent/{certificate_id}")
async def get_certificate(
    certificate_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    return _serialize(await _get_certificate(db, certificate_id, _own_college(current_user)))


@router.put("/certificateIssuance/singleStudent/{certificate_id}")
async def update_certificate(
    certificate_id: str,
    request: Request,
    payload: CertificateUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    """Record the issue date and/or payment status"""
    certificate = await _get_certificate(db, certificate_id, _own_college(current_user))

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(certificate, field, value)

    await log_audit(db, "UPDATE", "certificate", user=current_user, resource_id=certificate.id,
                    details=payload.model_dump(exclude_unset=True, exclude_none=True, mode="json"),
                    request=request)
    await db.commit()
    return _serialize(certificate)


@router.delete("/certificateIssuance/singleStudent/{certificate_id}", response_model=MessageResponse)
async def delete_certificate(
    certificate_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(manage_certificates)
):
    certificate = await _get_certificate(db, certificate_id, _own_college(current_user))

    certificate.certificate_type.certificates.remove(certificate)
    await db.delete(certificate)
    await log_audit(db, "DELETE", "certificate", user=current_user, resource_id=certificate_id, request=request)
    await db.commit()
    return {"message": "Certificate deleted successfully"}


@router.get("/studentOperations/{student_id}/certificate")
async def list_student_certificates(
    student_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The student themself or an admin of the student's college"""
    student = await db.get(Student, student_id)
    if not student:
        raise ResourceNotFoundError("Student not found")

    is_self = student.user_id is not None and str(student.user_id) == str(current_user.id)
    is_college_admin = (
        current_user.role == UserRole.COLLEGE_SUPER_ADMIN
        and str(current_user.college_id) == str(student.college_id)
    )
    if not (is_self or is_college_admin):
        raise AuthorizationError()

    result = await db.execute(
        select(Certificate).where(Certificate.student_id == student.id).order_by(Certificate.created_at)
    )
    certificates = result.scalars().all()
    if not certificates:
        raise ResourceNotFoundError("No certificate issuances found for the student")
    return [_serialize(c) for c in certificates]
