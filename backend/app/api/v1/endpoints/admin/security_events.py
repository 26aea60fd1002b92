"""
Admin Security Events endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from app.core.database import get_db
from app.models import User, SecurityEvent, SecuritySeverity
from app.modules.auth.access_control import Permission, require_permission
from app.schemas.admin import SecurityEventsResponse
from app.utils.pagination import paginate

router = APIRouter()


@router.get("", response_model=SecurityEventsResponse)
async def list_security_events(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    event_type: Optional[str] = Query(None, alias="eventType"),
    severity: Optional[SecuritySeverity] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(require_permission(Permission.VIEW_AUDIT_LOGS))
):
    query = select(SecurityEvent)
    if event_type:
        query = query.where(SecurityEvent.event_type == event_type)
    if severity:
        query = query.where(SecurityEvent.severity == severity)

    return await paginate(db, query.order_by(SecurityEvent.created_at.desc()), page, page_size)
