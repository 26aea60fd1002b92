from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Notification(Base):
    """Circular published by SBTE as a PDF to one or more colleges"""
    __tablename__ = "notifications"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    pdf_path = Column(String(500), nullable=False)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    recipients = relationship(
        "NotifiedCollege",
        back_populates="notification",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Notification {self.title}>"


class NotifiedCollege(Base):
    """Delivery of a notification to a college, with its read flag"""
    __tablename__ = "notified_colleges"
    __table_args__ = (
        UniqueConstraint("notification_id", "college_id", name="uq_notified_college"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    notification_id = Column(GUID, ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False, index=True)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    notification = relationship("Notification", back_populates="recipients")
