from pydantic import Field, model_validator
from typing import List, Optional
from datetime import datetime

from app.models.attendance import Month
from app.schemas.common import CamelModel


class MonthlyClassUpdate(CamelModel):
    total_theory_classes: Optional[int] = Field(None, ge=0)
    total_practical_classes: Optional[int] = Field(None, ge=0)
    completed_theory_classes: Optional[int] = Field(None, ge=0)
    completed_practical_classes: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def completed_within_total(self):
        for kind in ("theory", "practical"):
            total = getattr(self, f"total_{kind}_classes")
            completed = getattr(self, f"completed_{kind}_classes")
            if total is not None and completed is not None and completed > total:
                raise ValueError(f"Completed {kind} classes cannot exceed total {kind} classes")
        return self


class MonthlyClassCreate(MonthlyClassUpdate):
    batch_subject_id: str
    month: Month


class MonthlyClassResponse(CamelModel):
    id: str
    batch_subject_id: str
    month: Month
    total_theory_classes: Optional[int] = None
    total_practical_classes: Optional[int] = None
    completed_theory_classes: Optional[int] = None
    completed_practical_classes: Optional[int] = None
    created_at: datetime


class AttendanceCreate(CamelModel):
    student_id: str
    attended_theory_classes: int = Field(..., ge=0)
    attended_practical_classes: int = Field(..., ge=0)


class AttendanceUpdate(CamelModel):
    attended_theory_classes: Optional[int] = Field(None, ge=0)
    attended_practical_classes: Optional[int] = Field(None, ge=0)


class AttendanceResponse(CamelModel):
    id: str
    monthly_class_id: str
    student_id: str
    attended_theory_classes: int
    attended_practical_classes: int
    created_at: datetime


class AttendanceImportRow(CamelModel):
    enrollment_no: str = Field(..., min_length=1)
    attended_theory_classes: int = Field(..., ge=0)
    attended_practical_classes: int = Field(..., ge=0)


class AttendanceImportRequest(CamelModel):
    monthly_class_id: str
    rows: List[AttendanceImportRow] = Field(..., min_length=1)
