"""
Admin API endpoints for the SBTE portal.
All endpoints require the VIEW_AUDIT_LOGS permission (SBTE administrators).
"""
from fastapi import APIRouter

from app.api.v1.endpoints.admin import audit_logs, security_events

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["Admin Audit Logs"])
admin_router.include_router(security_events.router, prefix="/security-events", tags=["Admin Security Events"])
