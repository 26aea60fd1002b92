from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON, Enum as SQLEnum
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class AuditStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    WARNING = "WARNING"


class SecuritySeverity(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AuditLog(Base):
    """Audit trail of user actions"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user_email = Column(String(255), nullable=True)

    # Action details
    action = Column(String(100), nullable=False)  # e.g. 'LOGIN', 'CREATE_COLLEGE', 'PAYMENT_VERIFIED'
    resource = Column(String(100), nullable=False)  # e.g. 'auth', 'college', 'payment'
    resource_id = Column(String(100), nullable=True)
    details = Column(JSON, nullable=True)
    status = Column(SQLEnum(AuditStatus), default=AuditStatus.SUCCESS, nullable=False)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.user_email or self.user_id}>"


class SecurityEvent(Base):
    """Security-relevant events: lockouts, bad signatures, suspicious input"""
    __tablename__ = "security_events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    event_type = Column(String(100), nullable=False, index=True)
    severity = Column(SQLEnum(SecuritySeverity), default=SecuritySeverity.LOW, nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    user_email = Column(String(255), nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<SecurityEvent {self.event_type} {self.severity.value if self.severity else '-'}>"
