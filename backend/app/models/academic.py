from sqlalchemy import (
    Column, String, DateTime, Integer, Float, ForeignKey, Enum as SQLEnum, UniqueConstraint
)
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class ClassType(str, enum.Enum):
    """How a subject is assessed; picks the grade table"""
    THEORY = "THEORY"
    PRACTICAL = "PRACTICAL"


class Semester(Base):
    __tablename__ = "semesters"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    number = Column(Integer, unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Semester {self.number}>"


class Batch(Base):
    """A cohort of students in one department and semester"""
    __tablename__ = "batches"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    semester_id = Column(GUID, ForeignKey("semesters.id"), nullable=False)
    start_year = Column(Integer, nullable=True)
    end_year = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Batch {self.name}>"


class Student(Base):
    __tablename__ = "students"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    enrollment_no = Column(String(50), unique=True, nullable=False, index=True)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Student {self.enrollment_no}>"


class StudentBatch(Base):
    """Enrollment of a student in a batch"""
    __tablename__ = "student_batches"
    __table_args__ = (
        UniqueConstraint("student_id", "batch_id", name="uq_student_batch"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(GUID, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False)
    credit = Column(Float, nullable=False, default=0)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Subject {self.code}>"


class BatchSubject(Base):
    """A subject as taught to one batch"""
    __tablename__ = "batch_subjects"
    __table_args__ = (
        UniqueConstraint("batch_id", "subject_id", name="uq_batch_subject"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    batch_id = Column(GUID, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(GUID, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    class_type = Column(SQLEnum(ClassType), default=ClassType.THEORY, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ExamType(Base):
    """Named exam with its full marks, e.g. 'Mid Term' or 'End Semester'"""
    __tablename__ = "exam_types"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    full_marks = Column(Float, nullable=False)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ExamMark(Base):
    __tablename__ = "exam_marks"
    __table_args__ = (
        UniqueConstraint("student_id", "batch_subject_id", "exam_type_id", name="uq_exam_mark"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_subject_id = Column(GUID, ForeignKey("batch_subjects.id", ondelete="CASCADE"), nullable=False)
    exam_type_id = Column(GUID, ForeignKey("exam_types.id", ondelete="CASCADE"), nullable=False)
    achieved_marks = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
