from pydantic import Field
from typing import List, Optional

from app.schemas.common import CamelModel


class InternalMarkEntry(CamelModel):
    enrollment_no: str
    internal_marks: float = Field(..., ge=0, le=30)


class ImportInternalRequest(CamelModel):
    batch_subject_id: str
    marks: List[InternalMarkEntry] = Field(..., min_length=1)


class BatchRequest(CamelModel):
    batch_id: str


class SubjectGradeResponse(CamelModel):
    id: str
    batch_subject_id: str
    credit: float
    internal_marks: Optional[float] = None
    external_marks: Optional[float] = None
    grade: Optional[str] = None
    grade_point: Optional[float] = None
    quality_point: Optional[float] = None


class GradeCardResponse(CamelModel):
    id: str
    card_no: str
    student_id: str
    batch_id: str
    semester_id: str
    total_graded_credit: Optional[float] = None
    total_quality_point: Optional[float] = None
    gpa: Optional[float] = None
    cgpa: Optional[float] = None
    subject_grades: List[SubjectGradeResponse] = []
