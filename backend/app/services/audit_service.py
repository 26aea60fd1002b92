"""
Audit trail and security event recording.

Rows are written inside a SAVEPOINT after flushing the caller's pending
changes. A failed audit insert rolls back only the savepoint and is logged,
leaving the caller's transaction usable.
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging_config import logger
from app.models import AuditLog, AuditStatus, SecurityEvent, SecuritySeverity


def get_client_info(request: Optional[Request]) -> Tuple[Optional[str], Optional[str]]:
    """(ip_address, user_agent) honouring proxy headers"""
    if request is None:
        return None, None

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.headers.get("x-real-ip") or (request.client.host if request.client else None)

    return ip, request.headers.get("user-agent")


async def log_audit(
    db: AsyncSession,
    action: str,
    resource: str,
    user=None,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    status: AuditStatus = AuditStatus.SUCCESS,
    request: Optional[Request] = None,
    user_email: Optional[str] = None,
) -> None:
    ip_address, user_agent = get_client_info(request)
    await db.flush()
    try:
        async with db.begin_nested():
            db.add(AuditLog(
                user_id=getattr(user, "id", None),
                user_email=getattr(user, "email", None) or user_email,
                action=action,
                resource=resource,
                resource_id=str(resource_id) if resource_id else None,
                details=details,
                status=status,
                ip_address=ip_address,
                user_agent=user_agent,
            ))
    except SQLAlchemyError as e:
        logger.error(f"[Audit] Failed to record {action} on {resource}: {e}")


async def log_security_event(
    db: AsyncSession,
    event_type: str,
    severity: SecuritySeverity = SecuritySeverity.LOW,
    user=None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    user_email: Optional[str] = None,
) -> None:
    ip_address, user_agent = get_client_info(request)
    logger.warning(
        f"[Security] {event_type} ({severity.value})",
        extra={"event_type": "security", "security_event": event_type, "client_ip": ip_address},
    )
    await db.flush()
    try:
        async with db.begin_nested():
            db.add(SecurityEvent(
                event_type=event_type,
                severity=severity,
                user_id=getattr(user, "id", None),
                user_email=getattr(user, "email", None) or user_email,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
            ))
    except SQLAlchemyError as e:
        logger.error(f"[Security] Failed to record {event_type}: {e}")
