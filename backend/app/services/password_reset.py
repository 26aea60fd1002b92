"""
One-time-code password reset with per-account throttling.

An account may request at most RESET_MAX_PER_HOUR codes per hour and
RESET_MAX_PER_DAY per day; crossing either limit blocks further requests
for RESET_LOCKOUT_MINUTES.
"""

import secrets
from datetime import datetime, timedelta
from math import ceil
from typing import Optional

from app.core.config import settings
from app.core.exceptions import TooManyRequestsError, ValidationError
from app.models import User

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def register_reset_request(user: User, now: Optional[datetime] = None) -> None:
    """Count a reset request; raises TooManyRequestsError when throttled"""
    now = now or datetime.utcnow()

    if user.reset_locked_until and user.reset_locked_until > now:
        remaining = ceil((user.reset_locked_until - now).total_seconds() / 60)
        raise TooManyRequestsError(
            f"Too many reset requests. Try again in {remaining} minutes.",
            retry_after_minutes=remaining,
        )

    if not user.reset_hour_started_at or now - user.reset_hour_started_at >= HOUR:
        user.reset_hour_started_at = now
        user.reset_attempts_hour = 0
    if not user.reset_day_started_at or now - user.reset_day_started_at >= DAY:
        user.reset_day_started_at = now
        user.reset_attempts_day = 0

    if (
        (user.reset_attempts_hour or 0) >= settings.RESET_MAX_PER_HOUR
        or (user.reset_attempts_day or 0) >= settings.RESET_MAX_PER_DAY
    ):
        user.reset_locked_until = now + timedelta(minutes=settings.RESET_LOCKOUT_MINUTES)
        raise TooManyRequestsError(
            f"Too many reset requests. Try again in {settings.RESET_LOCKOUT_MINUTES} minutes.",
            retry_after_minutes=settings.RESET_LOCKOUT_MINUTES,
        )

    user.reset_attempts_hour = (user.reset_attempts_hour or 0) + 1
    user.reset_attempts_day = (user.reset_attempts_day or 0) + 1


def issue_otp(user: User, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    otp = generate_otp()
    user.otp = otp
    user.otp_expires_at = now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    return otp


def check_otp(user: Optional[User], otp: str, now: Optional[datetime] = None) -> None:
    """Raise ValidationError unless otp is the live code for user"""
    now = now or datetime.utcnow()
    if user is None or not user.otp or not secrets.compare_digest(user.otp, otp):
        raise ValidationError("Invalid OTP.", field="otp")
    if not user.otp_expires_at or user.otp_expires_at < now:
        raise ValidationError("OTP has expired.", field="otp")


def clear_otp(user: User) -> None:
    user.otp = None
    user.otp_expires_at = None
    user.reset_attempts_hour = 0
    user.reset_attempts_day = 0
    user.reset_hour_started_at = None
    user.reset_day_started_at = None
    user.reset_locked_until = None
