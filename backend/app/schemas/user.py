from pydantic import EmailStr, Field
from typing import List, Optional

from app.models.user import UserRole
from app.schemas.auth import UserResponse
from app.schemas.common import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    password: str
    role: UserRole
    phone: Optional[str] = Field(None, pattern=r'^[6-9]\d{9}$', description="10-digit Indian mobile number")
    college_id: Optional[str] = None
    department_id: Optional[str] = None


class UserStatusUpdate(CamelModel):
    is_active: bool


class UserListResponse(CamelModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
