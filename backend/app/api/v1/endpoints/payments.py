"""
Razorpay payment endpoints for student exam fees.

Flow:
1. Student selects unpaid fees, frontend calls /create-order
2. Razorpay checkout collects the payment
3. Frontend calls /verify-payment with the checkout response
4. The webhook is a backup for step 3
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request, Header
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from typing import Optional
import json

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import InvalidSignatureError, PaymentError, ResourceNotFoundError
from app.core.logging_config import logger
from app.models import (
    User, Student, StudentBatch, StudentBatchExamFee, Payment, PaymentStatus,
    AuditStatus, SecuritySeverity,
)
from app.modules.auth.access_control import Permission, require_permission
from app.modules.auth.dependencies import get_current_student
from app.schemas.finance import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    PaymentResponse,
    PrefillResponse,
)
from app.services.audit_service import log_audit, log_security_event
from app.services.payment_service import (
    RazorpayGateway,
    get_payment_gateway,
    generate_receipt,
    to_paise,
    verify_payment_signature,
    verify_webhook_signature,
)

router = APIRouter(prefix="/razorpay", tags=["Payments"])


def _complete(payment: Payment, razorpay_payment_id: Optional[str], signature: Optional[str] = None) -> None:
    payment.status = PaymentStatus.COMPLETED
    payment.razorpay_payment_id = razorpay_payment_id
    if signature:
        payment.razorpay_signature = signature
    payment.paid_at = datetime.utcnow()
    payment.failure_reason = None
    for fee in payment.exam_fees:
        fee.payment_status = PaymentStatus.COMPLETED


def _fail(payment: Payment, reason: str) -> None:
    payment.status = PaymentStatus.FAILED
    payment.failure_reason = reason


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_payment_order(
    request: Request,
    payload: CreateOrderRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.PAY_EXAM_FEES)),
    student: Student = Depends(get_current_student),
    gateway: RazorpayGateway = Depends(get_payment_gateway)
):
    """Create a Razorpay order covering the selected unpaid fees"""
    fee_ids = list(dict.fromkeys(payload.student_batch_exam_fee_ids))

    result = await db.execute(
        select(StudentBatchExamFee)
        .join(StudentBatch, StudentBatchExamFee.student_batch_id == StudentBatch.id)
        .where(StudentBatchExamFee.id.in_(fee_ids), StudentBatch.student_id == student.id)
    )
    fees = result.scalars().all()

    if len(fees) != len(fee_ids):
        found = {str(f.id) for f in fees}
        missing = [i for i in fee_ids if i not in found]
        raise ResourceNotFoundError(f"Exam fees not found: {', '.join(missing)}")

    completed_ids = sorted({
        str(fee.id) for fee in fees
        if fee.payment_status == PaymentStatus.COMPLETED
        or any(p.status == PaymentStatus.COMPLETED for p in fee.payments)
    })
    if completed_ids:
        raise PaymentError("Some fees have already been paid.", details={"completedIds": completed_ids})

    total = round(sum(fee.exam_fee for fee in fees), 2)
    if abs(total - payload.amount) > 0.005:
        raise PaymentError(
            "Amount mismatch",
            details={
                "reason": f"The provided amount ({payload.amount}) does not match the total exam fees ({total})."
            },
        )

    amount_paise = to_paise(total)
    receipt = generate_receipt()
    order = gateway.create_order(
        amount_paise=amount_paise,
        currency=payload.currency,
        receipt=receipt,
        notes={"student_id": str(student.id), "enrollment_no": student.enrollment_no},
    )

    payment = Payment(
        student_id=student.id,
        user_id=current_user.id,
        amount=total,
        amount_paise=amount_paise,
        currency=payload.currency,
        receipt=receipt,
        razorpay_order_id=order["id"],
        status=PaymentStatus.PENDING,
        exam_fees=list(fees),
    )
    db.add(payment)
    await db.flush()

    await log_audit(db, "CREATE_ORDER", "payment", user=current_user, resource_id=payment.id,
                    details={"orderId": order["id"], "amount": total}, request=request)
    await db.commit()

    logger.log_payment_event("order_created", order["id"], True, amount=total, student_id=str(student.id))

    return CreateOrderResponse(
        success=True,
        order_id=order["id"],
        amount=order.get("amount", amount_paise),
        currency=order.get("currency", payload.currency),
        payment_id=payment.id,
        key_id=gateway.key_id,
    )


@router.put("/verify-payment", response_model=PaymentResponse)
async def verify_payment(
    request: Request,
    payload: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.PAY_EXAM_FEES))
):
    """Check the checkout signature and settle the payment and its fees"""
    result = await db.execute(
        select(Payment).where(Payment.razorpay_order_id == payload.razorpay_order_id)
    )
    payment = result.scalar_one_or_none()

    if not payment or str(payment.user_id) != str(current_user.id):
        raise ResourceNotFoundError("Payment not found")

    if payment.status == PaymentStatus.COMPLETED:
        logger.info(f"[Payment] Order {payment.razorpay_order_id} already completed")
        return payment

    if not verify_payment_signature(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
    ):
        _fail(payment, "Invalid signature")
        await log_security_event(db, "INVALID_PAYMENT_SIGNATURE", SecuritySeverity.HIGH, user=current_user,
                                 details={"orderId": payload.razorpay_order_id}, request=request)
        await log_audit(db, "VERIFY_PAYMENT", "payment", user=current_user, resource_id=payment.id,
                        status=AuditStatus.FAILURE, request=request)
        await db.commit()
        logger.log_payment_event("verify", payload.razorpay_order_id, False, reason="invalid signature")
        raise InvalidSignatureError()

    _complete(payment, payload.razorpay_payment_id, payload.razorpay_signature)
    await log_audit(db, "VERIFY_PAYMENT", "payment", user=current_user, resource_id=payment.id,
                    details={"paymentId": payload.razorpay_payment_id}, request=request)
    await db.commit()
    await db.refresh(payment)

    logger.log_payment_event("verify", payload.razorpay_order_id, True, amount=payment.amount)
    return payment


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    x_razorpay_signature: str = Header(None, alias="X-Razorpay-Signature")
):
    """
    Razorpay webhook endpoint, a backup for /verify-payment.

    Handles payment.captured and payment.failed.
    """
    if not settings.RAZORPAY_WEBHOOK_SECRET:
        logger.warning("[Webhook] Webhook secret not configured")
        return {"status": "skipped", "reason": "webhook not configured"}

    body = await request.body()
    if not verify_webhook_signature(body, x_razorpay_signature):
        logger.warning("[Webhook] Invalid webhook signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature"
        )

    try:
        event_payload = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook payload"
        )

    event = event_payload.get("event")
    logger.info(f"[Webhook] Received event: {event}")

    if event == "payment.captured":
        await _handle_payment_captured(event_payload, db)
    elif event == "payment.failed":
        await _handle_payment_failed(event_payload, db)

    return {"status": "ok"}


async def _find_payment_for_event(payload: dict, db: AsyncSession):
    entity = payload.get("payload", {}).get("payment", {}).get("entity", {})
    order_id = entity.get("order_id")
    if not order_id:
        logger.warning("[Webhook] No order_id in payment event")
        return None, entity

    result = await db.execute(select(Payment).where(Payment.razorpay_order_id == order_id))
    payment = result.scalar_one_or_none()
    if not payment:
        logger.warning(f"[Webhook] Payment not found for order {order_id}")
    return payment, entity


async def _handle_payment_captured(payload: dict, db: AsyncSession):
    payment, entity = await _find_payment_for_event(payload, db)
    if not payment:
        return

    if payment.status == PaymentStatus.COMPLETED:
        logger.info(f"[Webhook] Order {payment.razorpay_order_id} already processed")
        return

    _complete(payment, entity.get("id"))
    await db.commit()
    logger.log_payment_event("webhook_captured", payment.razorpay_order_id, True)


async def _handle_payment_failed(payload: dict, db: AsyncSession):
    payment, entity = await _find_payment_for_event(payload, db)
    if not payment or payment.status == PaymentStatus.COMPLETED:
        return

    _fail(payment, entity.get("error_description") or "Payment failed")
    await db.commit()
    logger.log_payment_event("webhook_failed", payment.razorpay_order_id, False)


@router.get("/studentPrefillData", response_model=PrefillResponse)
async def get_student_prefill_data(
    current_user: User = Depends(require_permission(Permission.PAY_EXAM_FEES)),
    student: Student = Depends(get_current_student)
):
    """Name, email and phone for the Razorpay checkout form"""
    return PrefillResponse(
        name=student.name,
        email=current_user.email or student.email,
        contact=student.phone or current_user.phone,
    )
