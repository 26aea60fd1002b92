from pydantic import EmailStr, Field
from typing import List, Optional, Union
from datetime import datetime

from app.models.user import UserRole
from app.schemas.common import CamelModel


class CaptchaChallenge(CamelModel):
    question: str
    hash: str
    expires_at: int


class CaptchaFields(CamelModel):
    """Answer plus the token pair handed out with the challenge"""
    captcha_answer: str
    captcha_hash: str
    captcha_expires_at: Union[int, str]


class CaptchaVerifyRequest(CaptchaFields):
    pass


class UserLogin(CaptchaFields):
    email: EmailStr
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    is_verified: bool
    college_id: Optional[str] = None
    department_id: Optional[str] = None
    created_at: datetime


class Token(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(Token):
    user: UserResponse


class LockStatusRequest(CamelModel):
    email: EmailStr


class LockStatusResponse(CamelModel):
    is_locked: bool
    failed_attempts: int
    max_attempts: int
    lockout_count: int
    locked_until: Optional[str] = None
    remaining_time: int = 0


class PasswordCheckRequest(CamelModel):
    password: str


class PasswordCheckResponse(CamelModel):
    is_valid: bool
    errors: List[str]


class PasswordResetInitiate(CaptchaFields):
    email: EmailStr


class OtpVerifyRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class PasswordResetRequest(OtpVerifyRequest):
    new_password: str
