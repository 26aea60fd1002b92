from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import PortalError, ValidationError
from app.core.logging_config import logger
from app.core.rate_limiter import limiter
from app.core.security import get_password_hash
from app.models import User, AuditStatus, SecuritySeverity
from app.schemas.auth import PasswordResetInitiate, OtpVerifyRequest, PasswordResetRequest
from app.schemas.common import MessageResponse
from app.services import account_lock, password_reset
from app.services.audit_service import log_audit, log_security_event
from app.services.email_service import email_service
from app.utils.captcha import validate_captcha
from app.utils.password_rules import validate_password

router = APIRouter(prefix="/auth/password-reset", tags=["Password Reset"])

GENERIC_INITIATE_MESSAGE = "If an account exists for this email, an OTP has been sent."


async def _get_user(db: AsyncSession, email: str):
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@router.post("/initiate", response_model=MessageResponse)
@limiter.limit("3/minute")
async def initiate_reset(
    request: Request,
    payload: PasswordResetInitiate,
    db: AsyncSession = Depends(get_db)
):
    """Send a 6-digit OTP; the response does not reveal whether the email exists"""
    if not validate_captcha(payload.captcha_answer, payload.captcha_hash, payload.captcha_expires_at):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired captcha"
        )

    user = await _get_user(db, payload.email)
    if not user or not user.is_active:
        logger.info(f"[PasswordReset] Reset requested for unknown or inactive email {payload.email}")
        return {"message": GENERIC_INITIATE_MESSAGE}

    try:
        password_reset.register_reset_request(user)
    except PortalError:
        await log_security_event(db, "PASSWORD_RESET_THROTTLED", SecuritySeverity.MEDIUM,
                                 user=user, request=request)
        await db.commit()
        raise

    otp = password_reset.issue_otp(user)
    await log_audit(db, "PASSWORD_RESET_REQUESTED", "auth", user=user, request=request)
    await db.commit()

    sent = await email_service.send_otp_email(user.email, user.name, otp)
    if not sent:
        logger.warning(f"[PasswordReset] OTP email not delivered to {user.email}")

    return {"message": GENERIC_INITIATE_MESSAGE}


@router.post("/verify-otp", response_model=MessageResponse)
async def verify_otp(
    payload: OtpVerifyRequest,
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user(db, payload.email)
    password_reset.check_otp(user, payload.otp)
    return {"message": "OTP verified."}


@router.post("/reset", response_model=MessageResponse)
async def reset_password(
    request: Request,
    payload: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
):
    """Set a new password with a valid OTP; also lifts any login lockout"""
    user = await _get_user(db, payload.email)
    password_reset.check_otp(user, payload.otp)

    is_valid, errors = validate_password(payload.new_password)
    if not is_valid:
        raise ValidationError("; ".join(errors), field="newPassword")

    user.hashed_password = get_password_hash(payload.new_password)
    password_reset.clear_otp(user)
    account_lock.unlock(user)

    await log_audit(db, "PASSWORD_RESET", "auth", user=user, status=AuditStatus.SUCCESS, request=request)
    await db.commit()

    logger.log_auth_event("password_reset", True, user.email)
    return {"message": "Password has been reset successfully."}
