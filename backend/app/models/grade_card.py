from sqlalchemy import Column, String, DateTime, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class StudentGradeCard(Base):
    """Per-student, per-semester result sheet"""
    __tablename__ = "student_grade_cards"
    __table_args__ = (
        UniqueConstraint("student_id", "batch_id", "semester_id", name="uq_grade_card_student_semester"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    card_no = Column(String(50), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(GUID, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    semester_id = Column(GUID, ForeignKey("semesters.id"), nullable=False)

    total_graded_credit = Column(Float, nullable=True)
    total_quality_point = Column(Float, nullable=True)
    gpa = Column(Float, nullable=True)
    cgpa = Column(Float, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subject_grades = relationship(
        "SubjectGradeDetail",
        back_populates="grade_card",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<StudentGradeCard {self.card_no}>"


class SubjectGradeDetail(Base):
    __tablename__ = "subject_grade_details"
    __table_args__ = (
        UniqueConstraint("grade_card_id", "batch_subject_id", name="uq_subject_grade_detail"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    grade_card_id = Column(GUID, ForeignKey("student_grade_cards.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_subject_id = Column(GUID, ForeignKey("batch_subjects.id", ondelete="CASCADE"), nullable=False)

    credit = Column(Float, nullable=False, default=0)
    internal_marks = Column(Float, nullable=True)
    external_marks = Column(Float, nullable=True)
    grade = Column(String(2), nullable=True)
    grade_point = Column(Float, nullable=True)
    quality_point = Column(Float, nullable=True)

    grade_card = relationship("StudentGradeCard", back_populates="subject_grades")
