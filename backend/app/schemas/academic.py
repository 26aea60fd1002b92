from pydantic import EmailStr, Field, model_validator
from typing import List, Optional
from datetime import datetime

from app.models.academic import ClassType
from app.schemas.common import CamelModel


class SemesterCreate(CamelModel):
    number: int = Field(..., ge=1, le=12)


class SemesterResponse(CamelModel):
    id: str
    number: int


class BatchCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    semester_id: str
    department_id: Optional[str] = None
    start_year: Optional[int] = Field(None, ge=1950, le=2100)
    end_year: Optional[int] = Field(None, ge=1950, le=2100)

    @model_validator(mode="after")
    def check_years(self):
        if self.start_year and self.end_year and self.end_year < self.start_year:
            raise ValueError("endYear must not be before startYear")
        return self


class BatchResponse(CamelModel):
    id: str
    name: str
    college_id: str
    department_id: Optional[str] = None
    semester_id: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None


class SubjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    credit: float = Field(..., ge=0, le=30)


class SubjectResponse(CamelModel):
    id: str
    name: str
    code: str
    credit: float
    college_id: str


class BatchSubjectCreate(CamelModel):
    batch_id: str
    subject_id: str
    class_type: ClassType = ClassType.THEORY


class BatchSubjectResponse(CamelModel):
    id: str
    batch_id: str
    subject_id: str
    class_type: ClassType


class StudentCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    enrollment_no: str = Field(..., min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department_id: Optional[str] = None
    batch_id: Optional[str] = None
    user_id: Optional[str] = None


class StudentResponse(CamelModel):
    id: str
    name: str
    enrollment_no: str
    email: Optional[str] = None
    phone: Optional[str] = None
    college_id: str
    department_id: Optional[str] = None
    user_id: Optional[str] = None


class StudentBatchCreate(CamelModel):
    student_id: str
    batch_id: str


class StudentBatchResponse(CamelModel):
    id: str
    student_id: str
    batch_id: str


class ExamTypeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    full_marks: float = Field(..., gt=0)


class ExamTypeResponse(CamelModel):
    id: str
    name: str
    full_marks: float
    college_id: str
    created_at: datetime


class ExamMarkEntry(CamelModel):
    student_id: str
    achieved_marks: float = Field(..., ge=0)


class ExamMarksCreate(CamelModel):
    batch_subject_id: str
    exam_type_id: str
    marks: List[ExamMarkEntry] = Field(..., min_length=1)


class ExamMarkResponse(CamelModel):
    id: str
    student_id: str
    batch_subject_id: str
    exam_type_id: str
    achieved_marks: float
