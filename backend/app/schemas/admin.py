from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models.audit_log import AuditStatus, SecuritySeverity
from app.schemas.common import CamelModel


class AuditLogResponse(CamelModel):
    id: str
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    status: AuditStatus
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime


class SecurityEventResponse(CamelModel):
    id: str
    event_type: str
    severity: SecuritySeverity
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime


class AuditLogsResponse(CamelModel):
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class SecurityEventsResponse(CamelModel):
    items: List[SecurityEventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class StatisticsResponse(CamelModel):
    colleges: int
    departments: int
    students: int
    users: int
    notifications: int
    pending_payments: int
    completed_payments: int
