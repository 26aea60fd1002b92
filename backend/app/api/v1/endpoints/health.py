"""
Health check endpoints.

Endpoints:
- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, tables created)
- /health/deep  - Detailed diagnostics for debugging
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import get_session_local
from app.core.logging_config import logger
from app.services.email_service import email_service
from app.services.payment_service import payment_gateway
from app.services.storage_service import storage_service


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity and that the schema exists"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            try:
                await session.execute(text("SELECT COUNT(*) FROM users"))
                tables_ok = True
            except SQLAlchemyError:
                tables_ok = False

        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": tables_ok,
        }
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": False,
            "error": str(e),
        }


def check_email_config() -> Dict[str, Any]:
    if email_service.is_configured:
        return {"status": "healthy", "provider": "smtp", "host": settings.SMTP_HOST}
    return {"status": "degraded", "message": "SMTP not configured - OTP emails will not be sent"}


def check_storage() -> Dict[str, Any]:
    return {"status": "healthy", "backend": storage_service.backend}


def check_payments() -> Dict[str, Any]:
    if payment_gateway.is_configured:
        return {"status": "healthy", "webhook": bool(settings.RAZORPAY_WEBHOOK_SECRET)}
    return {"status": "degraded", "message": "Razorpay keys not configured"}


@router.get("/live")
async def liveness_check():
    """Liveness check: the process is up"""
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}


@router.get("/ready")
async def readiness_check():
    """Readiness check: 503 until the database answers and tables exist"""
    db_check = await check_database()
    is_ready = db_check.get("status") == "healthy" and db_check.get("tables_ready", False)

    body = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {"database": db_check},
    }
    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {body}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body


@router.get("/deep")
async def deep_health_check():
    """Every dependency with its own status; overall is the worst of them"""
    start_time = time.time()

    checks = {
        "database": await check_database(),
        "email": check_email_config(),
        "storage": check_storage(),
        "payments": check_payments(),
    }

    statuses = [c.get("status", "unknown") for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    response = {
        "status": overall,
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "total_check_time_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    if overall == "unhealthy":
        logger.error(f"[HealthCheck] Deep check unhealthy: {response}")
    return response
