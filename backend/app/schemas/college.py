from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import date, datetime

from app.schemas.common import CamelModel


class CollegeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1)
    established_on: Optional[date] = None
    website_url: Optional[str] = None
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=6, max_length=20)

    @field_validator("name", "address")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class CollegeResponse(CamelModel):
    id: str
    name: str
    address: str
    established_on: Optional[date] = None
    website_url: Optional[str] = None
    contact_email: str
    contact_phone: str
    created_at: datetime


class DepartmentCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    college_id: str
    is_active: bool = True


class DepartmentResponse(CamelModel):
    id: str
    name: str
    is_active: bool
    college_id: str
    created_at: datetime


class DepartmentUpdate(CamelModel):
    """All fields optional so a missing one can be reported as 400"""
    department_id: Optional[str] = None
    name: Optional[str] = None
    is_active: Optional[bool] = None
    college_id: Optional[str] = None


class DepartmentActiveness(CamelModel):
    department_id: Optional[str] = None
    is_active: Optional[bool] = None


class DepartmentUpdateResponse(CamelModel):
    message: str
    department: DepartmentResponse
