# API endpoints
from . import (
    auth, password_reset, colleges, departments, users, academics, notifications,
    load_balancing, exam_fees, payments, grade_cards, statistics, health,
    alumni, attendance, certificates,
)

__all__ = [
    "auth", "password_reset", "colleges", "departments", "users", "academics", "notifications",
    "load_balancing", "exam_fees", "payments", "grade_cards", "statistics", "health",
    "alumni", "attendance", "certificates",
]
