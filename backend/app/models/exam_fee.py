from sqlalchemy import (
    Column, String, DateTime, Float, Integer, ForeignKey, Table, Text,
    Enum as SQLEnum, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


payment_exam_fees = Table(
    "payment_exam_fees",
    Base.metadata,
    Column("payment_id", GUID, ForeignKey("payments.id", ondelete="CASCADE"), primary_key=True),
    Column("exam_fee_id", GUID, ForeignKey("student_batch_exam_fees.id", ondelete="CASCADE"), primary_key=True),
)


class StudentBatchExamFee(Base):
    """Fee charged to one student's batch enrollment"""
    __tablename__ = "student_batch_exam_fees"
    __table_args__ = (
        UniqueConstraint("student_batch_id", "reason", name="uq_exam_fee_reason"),
        CheckConstraint("exam_fee > 0", name="ck_exam_fee_positive"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_batch_id = Column(GUID, ForeignKey("student_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    reason = Column(String(255), nullable=False)
    exam_fee = Column(Float, nullable=False)
    due_date = Column(DateTime, nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    payments = relationship(
        "Payment",
        secondary=payment_exam_fees,
        back_populates="exam_fees",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<StudentBatchExamFee {self.reason} {self.exam_fee}>"


class Payment(Base):
    """Razorpay order and its verification state"""
    __tablename__ = "payments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    amount = Column(Float, nullable=False)  # rupees
    amount_paise = Column(Integer, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    receipt = Column(String(100), nullable=True)

    razorpay_order_id = Column(String(100), unique=True, nullable=True, index=True)
    razorpay_payment_id = Column(String(100), nullable=True)
    razorpay_signature = Column(String(255), nullable=True)

    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    failure_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    exam_fees = relationship(
        "StudentBatchExamFee",
        secondary=payment_exam_fees,
        back_populates="payments",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Payment {self.razorpay_order_id} {self.status.value if self.status else '-'}>"
