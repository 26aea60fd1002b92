from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class CertificatePaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CertificateType(Base):
    """A kind of certificate a college issues, e.g. 'Migration Certificate'"""
    __tablename__ = "certificate_types"
    __table_args__ = (
        UniqueConstraint("college_id", "name", name="uq_certificate_type_name"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    certificates = relationship("Certificate", back_populates="certificate_type", lazy="selectin")

    def __repr__(self):
        return f"<CertificateType {self.name}>"


class Certificate(Base):
    """A certificate assigned to a student; issued once issue_date is set"""
    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("student_id", "certificate_type_id", name="uq_student_certificate"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    certificate_type_id = Column(GUID, ForeignKey("certificate_types.id", ondelete="CASCADE"), nullable=False)
    issue_date = Column(DateTime, nullable=True)
    payment_status = Column(
        SQLEnum(CertificatePaymentStatus), default=CertificatePaymentStatus.PENDING, nullable=False
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    certificate_type = relationship("CertificateType", back_populates="certificates", lazy="selectin")
