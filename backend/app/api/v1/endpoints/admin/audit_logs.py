"""
Admin Audit Logs endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_
from datetime import datetime
from typing import Optional

from app.core.database import get_db
from app.models import User, AuditLog, AuditStatus
from app.modules.auth.access_control import Permission, require_permission
from app.schemas.admin import AuditLogsResponse
from app.utils.pagination import paginate

router = APIRouter()


@router.get("", response_model=AuditLogsResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    action: Optional[str] = None,
    resource: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    audit_status: Optional[AuditStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(require_permission(Permission.VIEW_AUDIT_LOGS))
):
    """List audit logs with filtering and pagination"""
    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if resource:
        conditions.append(AuditLog.resource == resource)
    if user_id:
        conditions.append(AuditLog.user_id == user_id)
    if audit_status:
        conditions.append(AuditLog.status == audit_status)
    if start_date:
        conditions.append(AuditLog.created_at >= start_date)
    if end_date:
        conditions.append(AuditLog.created_at <= end_date)
    if search:
        search_term = f"%{search}%"
        conditions.append(or_(
            AuditLog.action.ilike(search_term),
            AuditLog.resource.ilike(search_term),
            AuditLog.user_email.ilike(search_term),
        ))

    query = select(AuditLog)
    if conditions:
        query = query.where(and_(*conditions))

    return await paginate(db, query.order_by(AuditLog.created_at.desc()), page, page_size)
