# Pydantic schemas
from app.schemas.common import CamelModel, MessageResponse
from app.schemas.auth import LoginResponse, UserResponse, Token
from app.schemas.college import CollegeCreate, CollegeResponse, DepartmentResponse
from app.schemas.finance import ExamFeeResponse, PaymentResponse
from app.schemas.grade_card import GradeCardResponse

__all__ = [
    "CamelModel",
    "MessageResponse",
    "LoginResponse",
    "UserResponse",
    "Token",
    "CollegeCreate",
    "CollegeResponse",
    "DepartmentResponse",
    "ExamFeeResponse",
    "PaymentResponse",
    "GradeCardResponse",
]
