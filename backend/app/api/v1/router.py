from fastapi import APIRouter
from app.api.v1.endpoints import (
    auth, password_reset, colleges, departments, users, academics, notifications,
    load_balancing, exam_fees, payments, grade_cards, statistics, health,
    alumni, attendance, certificates,
)
from app.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

# Deep health checks (/api/health/live, /ready, /deep)
api_router.include_router(health.router)

api_router.include_router(auth.router)
api_router.include_router(password_reset.router)
api_router.include_router(colleges.router)
api_router.include_router(departments.router)
api_router.include_router(users.router)
api_router.include_router(academics.router)
api_router.include_router(notifications.router)
api_router.include_router(load_balancing.router)
api_router.include_router(exam_fees.router)
api_router.include_router(payments.router)
api_router.include_router(grade_cards.router)
api_router.include_router(statistics.router)
api_router.include_router(alumni.router)
api_router.include_router(attendance.router)
api_router.include_router(certificates.router)
api_router.include_router(admin_router)
