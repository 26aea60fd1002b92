from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Integer, ForeignKey
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    SBTE_ADMIN = "SBTE_ADMIN"
    EDUCATION_DEPARTMENT = "EDUCATION_DEPARTMENT"
    COLLEGE_SUPER_ADMIN = "COLLEGE_SUPER_ADMIN"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    HOD = "HOD"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    ALUMNUS = "ALUMNUS"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Tenant scoping
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="SET NULL"), nullable=True, index=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)

    # Account lockout
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    last_failed_login_at = Column(DateTime, nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False)
    locked_until = Column(DateTime, nullable=True)
    lockout_count = Column(Integer, default=0, nullable=False)

    # Password reset (OTP)
    otp = Column(String(6), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    reset_attempts_hour = Column(Integer, default=0, nullable=False)
    reset_attempts_day = Column(Integer, default=0, nullable=False)
    reset_hour_started_at = Column(DateTime, nullable=True)
    reset_day_started_at = Column(DateTime, nullable=True)
    reset_locked_until = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
