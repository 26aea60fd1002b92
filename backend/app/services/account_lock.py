"""
Login lockout bookkeeping on the User row.

After MAX_LOGIN_ATTEMPTS failures inside LOGIN_ATTEMPT_WINDOW_MINUTES the
account locks. Each further lockout doubles the duration, capped at
MAX_LOCKOUT_HOURS. An expired lock is cleared on the next check.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from math import ceil
from typing import Optional

from app.core.config import settings
from app.core.logging_config import logger
from app.models import User


@dataclass
class LockStatus:
    is_locked: bool
    failed_attempts: int
    max_attempts: int
    lockout_count: int
    locked_until: Optional[datetime] = None
    remaining_minutes: int = 0

    def to_dict(self) -> dict:
        return {
            "isLocked": self.is_locked,
            "failedAttempts": self.failed_attempts,
            "maxAttempts": self.max_attempts,
            "lockoutCount": self.lockout_count,
            "lockedUntil": self.locked_until.isoformat() if self.locked_until else None,
            "remainingTime": self.remaining_minutes,
        }


def lockout_duration(lockout_count: int) -> timedelta:
    """30 min, 60 min, 120 min ... never above the configured cap"""
    base = timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES)
    cap = timedelta(hours=settings.MAX_LOCKOUT_HOURS)
    exponent = max(lockout_count - 1, 0)
    # Past ~20 doublings the cap has long been reached
    if exponent > 20:
        return cap
    return min(base * (2 ** exponent), cap)


def refresh_lock(user: User, now: Optional[datetime] = None) -> bool:
    """
    Clear an expired lock and stale attempt counter.

    Returns True if the account is still locked.
    """
    now = now or datetime.utcnow()

    if user.is_locked and user.locked_until and user.locked_until <= now:
        logger.info(f"[AccountLock] Lock expired for {user.email}")
        user.is_locked = False
        user.locked_until = None
        user.failed_login_attempts = 0

    window = timedelta(minutes=settings.LOGIN_ATTEMPT_WINDOW_MINUTES)
    if (
        not user.is_locked
        and user.failed_login_attempts
        and user.last_failed_login_at
        and now - user.last_failed_login_at > window
    ):
        user.failed_login_attempts = 0

    return bool(user.is_locked)


def get_lock_status(user: User, now: Optional[datetime] = None) -> LockStatus:
    now = now or datetime.utcnow()
    locked = refresh_lock(user, now)
    remaining = 0
    if locked and user.locked_until:
        remaining = max(ceil((user.locked_until - now).total_seconds() / 60), 0)
    return LockStatus(
        is_locked=locked,
        failed_attempts=user.failed_login_attempts or 0,
        max_attempts=settings.MAX_LOGIN_ATTEMPTS,
        lockout_count=user.lockout_count or 0,
        locked_until=user.locked_until if locked else None,
        remaining_minutes=remaining,
    )


def record_failed_attempt(user: User, now: Optional[datetime] = None) -> bool:
    """Count a failed login; returns True when this attempt locked the account"""
    now = now or datetime.utcnow()
    refresh_lock(user, now)

    user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
    user.last_failed_login_at = now

    if user.failed_login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
        user.lockout_count = (user.lockout_count or 0) + 1
        user.is_locked = True
        user.locked_until = now + lockout_duration(user.lockout_count)
        logger.log_auth_event(
            "lockout", False, user.email,
            reason=f"locked until {user.locked_until.isoformat()}",
            lockout_count=user.lockout_count,
        )
        return True

    return False


def reset_failed_attempts(user: User) -> None:
    """Successful login: clear attempts but keep the lockout history"""
    user.failed_login_attempts = 0
    user.last_failed_login_at = None
    user.is_locked = False
    user.locked_until = None


def unlock(user: User) -> None:
    """Administrative or password-reset unlock"""
    reset_failed_attempts(user)
    user.lockout_count = 0
