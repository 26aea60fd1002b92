from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AccountLockedError, AuthenticationError
from app.core.logging_config import logger, set_user_id
from app.core.rate_limiter import limiter
from app.core.security import create_token_pair, decode_token, verify_password
from app.models import User, UserRole, AuditStatus, SecuritySeverity
from app.modules.auth.dependencies import get_current_user
from app.schemas.auth import (
    CaptchaChallenge,
    CaptchaVerifyRequest,
    UserLogin,
    LoginResponse,
    RefreshRequest,
    Token,
    UserResponse,
    LockStatusRequest,
    LockStatusResponse,
    PasswordCheckRequest,
    PasswordCheckResponse,
)
from app.services import account_lock
from app.services.audit_service import log_audit, log_security_event
from app.utils.captcha import generate_captcha, validate_captcha
from app.utils.password_rules import validate_password

router = APIRouter(prefix="/auth", tags=["Authentication"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


@router.get("/captcha", response_model=CaptchaChallenge)
async def get_captcha(response: Response):
    """Issue a fresh arithmetic challenge"""
    for header, value in NO_CACHE_HEADERS.items():
        response.headers[header] = value
    return generate_captcha()


@router.post("/captcha/verify")
async def verify_captcha(payload: CaptchaVerifyRequest):
    """Check an answer without consuming anything (used by the login form)"""
    valid = validate_captcha(payload.captcha_answer, payload.captcha_hash, payload.captcha_expires_at)
    return {"valid": valid}


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email, password and captcha (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"

    if not validate_captcha(credentials.captcha_answer, credentials.captcha_hash, credentials.captcha_expires_at):
        logger.log_auth_event("login", False, credentials.email, reason="Invalid captcha", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired captcha"
        )

    result = await db.execute(
        select(User).where(User.email == credentials.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.log_auth_event("login", False, credentials.email, reason="Unknown email", client_ip=client_ip)
        await log_audit(db, "LOGIN", "auth", user_email=credentials.email,
                        status=AuditStatus.FAILURE, details={"reason": "unknown email"}, request=request)
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    now = datetime.utcnow()
    if account_lock.refresh_lock(user, now):
        lock = account_lock.get_lock_status(user, now)
        logger.log_auth_event("login", False, user.email, reason="Account locked", client_ip=client_ip)
        await db.commit()
        raise AccountLockedError(lock.locked_until.isoformat(), lock.remaining_minutes)

    if not verify_password(credentials.password, user.hashed_password):
        just_locked = account_lock.record_failed_attempt(user, now)
        logger.log_auth_event("login", False, user.email, reason="Invalid password", client_ip=client_ip)
        await log_audit(db, "LOGIN", "auth", user=user, status=AuditStatus.FAILURE,
                        details={"reason": "invalid password", "failedAttempts": user.failed_login_attempts},
                        request=request)
        if just_locked:
            await log_security_event(db, "ACCOUNT_LOCKED", SecuritySeverity.HIGH, user=user,
                                     details={"lockoutCount": user.lockout_count}, request=request)
            lock = account_lock.get_lock_status(user, now)
            await db.commit()
            raise AccountLockedError(lock.locked_until.isoformat(), lock.remaining_minutes)
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.is_active:
        logger.log_auth_event("login", False, user.email, reason="Account inactive", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    if user.role == UserRole.ALUMNUS and not user.is_verified:
        logger.log_auth_event("login", False, user.email, reason="Alumnus not verified", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your alumni account is pending verification by the college"
        )

    account_lock.reset_failed_attempts(user)
    user.last_login = now
    await log_audit(db, "LOGIN", "auth", user=user, request=request)
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event("login", True, user.email, client_ip=client_ip, user_role=user.role.value)

    return {
        **create_token_pair(user),
        "user": UserResponse.model_validate(user),
    }


@router.post("/refresh", response_model=Token)
async def refresh_token(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    claims = decode_token(payload.refresh_token)
    if claims.get("type") != "refresh":
        raise AuthenticationError("Invalid token type")

    result = await db.execute(select(User).where(User.id == claims.get("sub")))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return create_token_pair(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/check-lock-status", response_model=LockStatusResponse)
async def check_lock_status(
    payload: LockStatusRequest,
    db: AsyncSession = Depends(get_db)
):
    """Lockout state for the login form; unknown emails report unlocked"""
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()

    if not user:
        return LockStatusResponse(
            is_locked=False,
            failed_attempts=0,
            max_attempts=settings.MAX_LOGIN_ATTEMPTS,
            lockout_count=0,
        )

    return account_lock.get_lock_status(user).to_dict()


@router.post("/validate-password", response_model=PasswordCheckResponse)
async def check_password_strength(payload: PasswordCheckRequest):
    is_valid, errors = validate_password(payload.password)
    return PasswordCheckResponse(is_valid=is_valid, errors=errors)
