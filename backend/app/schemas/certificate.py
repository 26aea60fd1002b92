from pydantic import Field
from typing import List, Optional
from datetime import datetime

from app.models.certificate import CertificatePaymentStatus
from app.schemas.common import CamelModel


class CertificateTypeCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)


class CertificateTypeResponse(CamelModel):
    id: str
    name: str
    college_id: str
    certificates: int = 0
    created_at: datetime


class CertificateAssign(CamelModel):
    student_id: str
    certificate_type_id: str


class CertificateBulkAssign(CamelModel):
    student_ids: List[str] = Field(..., min_length=1)
    certificate_type_id: str


class CertificateUpdate(CamelModel):
    issue_date: Optional[datetime] = None
    payment_status: Optional[CertificatePaymentStatus] = None


class CertificateResponse(CamelModel):
    id: str
    student_id: str
    certificate_type_id: str
    certificate_type_name: Optional[str] = None
    issue_date: Optional[datetime] = None
    payment_status: CertificatePaymentStatus
    created_at: datetime
