from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.exam_fee import PaymentStatus
from app.schemas.common import CamelModel


class ExamFeeCreate(CamelModel):
    student_batch_id: str
    reason: str = Field(..., min_length=1, max_length=255)
    exam_fee: float = Field(..., gt=0)
    due_date: datetime

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        return v.strip() if isinstance(v, str) else v


class ExamFeeResponse(CamelModel):
    id: str
    student_batch_id: str
    reason: str
    exam_fee: float
    due_date: datetime
    payment_status: PaymentStatus
    created_at: datetime
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    batch_id: Optional[str] = None
    batch_name: Optional[str] = None


class CreateOrderRequest(CamelModel):
    student_batch_exam_fee_ids: List[str] = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    currency: str = "INR"


class CreateOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    amount: int  # paise
    currency: str
    payment_id: str
    key_id: Optional[str] = None


class VerifyPaymentRequest(CamelModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentResponse(CamelModel):
    id: str
    amount: float
    currency: str
    status: PaymentStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None


class PrefillResponse(CamelModel):
    name: str
    email: Optional[str] = None
    contact: Optional[str] = None
