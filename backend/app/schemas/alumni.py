from pydantic import EmailStr, Field, field_validator
from typing import List, Optional
from datetime import date, datetime

from app.schemas.auth import CaptchaFields
from app.schemas.common import CamelModel


def _max_graduation_year() -> int:
    return datetime.utcnow().year + 5


class AlumnusRegistration(CaptchaFields):
    """Public self-registration form; the account stays unverified until the college approves it"""
    email: EmailStr
    password: str
    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(None, pattern=r'^[6-9]\d{9}$', description="10-digit Indian mobile number")
    college_id: str
    department_id: Optional[str] = None
    graduation_year: int = Field(..., ge=1900)
    date_of_birth: Optional[date] = None
    address: Optional[str] = Field(None, min_length=5, max_length=255)
    gpa: Optional[float] = Field(None, ge=0, le=10)
    job_status: Optional[str] = Field(None, max_length=100)
    current_employer: Optional[str] = Field(None, max_length=255)
    current_position: Optional[str] = Field(None, max_length=255)
    industry: Optional[str] = Field(None, max_length=255)
    linked_in_profile: Optional[str] = Field(None, max_length=500)
    achievements: Optional[str] = None

    @field_validator("graduation_year")
    @classmethod
    def graduation_year_not_far_future(cls, v: int) -> int:
        if v > _max_graduation_year():
            raise ValueError(f"graduationYear must not be after {_max_graduation_year()}")
        return v

    @field_validator("linked_in_profile")
    @classmethod
    def linked_in_is_url(cls, v: Optional[str]) -> Optional[str]:
        # the form submits "" when the field is left blank
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("linkedInProfile must be a URL")
        return v


class AlumnusRegistrationResponse(CamelModel):
    message: str
    user_id: str


class AlumnusResponse(CamelModel):
    user_id: str
    name: str
    email: str
    is_verified: bool
    college_id: str
    department_id: Optional[str] = None
    graduation_year: int
    job_status: Optional[str] = None
    current_employer: Optional[str] = None
    current_position: Optional[str] = None
    industry: Optional[str] = None
    linked_in_profile: Optional[str] = None
    created_at: datetime


class AlumniListResponse(CamelModel):
    items: List[AlumnusResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
