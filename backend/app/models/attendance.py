from sqlalchemy import (
    Column, DateTime, Integer, ForeignKey, Enum as SQLEnum, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Month(str, enum.Enum):
    JANUARY = "JANUARY"
    FEBRUARY = "FEBRUARY"
    MARCH = "MARCH"
    APRIL = "APRIL"
    MAY = "MAY"
    JUNE = "JUNE"
    JULY = "JULY"
    AUGUST = "AUGUST"
    SEPTEMBER = "SEPTEMBER"
    OCTOBER = "OCTOBER"
    NOVEMBER = "NOVEMBER"
    DECEMBER = "DECEMBER"


class MonthlyBatchSubjectClass(Base):
    """Classes planned and held for one batch subject in one month"""
    __tablename__ = "monthly_batch_subject_classes"
    __table_args__ = (
        UniqueConstraint("batch_subject_id", "month", name="uq_monthly_class"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    batch_subject_id = Column(GUID, ForeignKey("batch_subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(SQLEnum(Month), nullable=False)
    total_theory_classes = Column(Integer, nullable=True)
    total_practical_classes = Column(Integer, nullable=True)
    completed_theory_classes = Column(Integer, nullable=True)
    completed_practical_classes = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    attendances = relationship(
        "MonthlyBatchSubjectAttendance",
        back_populates="monthly_class",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<MonthlyBatchSubjectClass {self.batch_subject_id} {self.month}>"


class MonthlyBatchSubjectAttendance(Base):
    """Classes one student attended out of a monthly class record"""
    __tablename__ = "monthly_batch_subject_attendances"
    __table_args__ = (
        UniqueConstraint("monthly_class_id", "student_id", name="uq_monthly_attendance"),
        CheckConstraint("attended_theory_classes >= 0", name="ck_attended_theory_non_negative"),
        CheckConstraint("attended_practical_classes >= 0", name="ck_attended_practical_non_negative"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    monthly_class_id = Column(
        GUID, ForeignKey("monthly_batch_subject_classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    attended_theory_classes = Column(Integer, default=0, nullable=False)
    attended_practical_classes = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    monthly_class = relationship("MonthlyBatchSubjectClass", back_populates="attendances")
