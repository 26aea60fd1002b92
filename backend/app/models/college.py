from sqlalchemy import Column, String, DateTime, Date, Boolean, ForeignKey, Text, UniqueConstraint
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class College(Base):
    """College model"""
    __tablename__ = "colleges"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    established_on = Column(Date, nullable=True)

    # Contact
    website_url = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(20), nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<College {self.name}>"


class Department(Base):
    """Department within a college"""
    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("college_id", "name", name="uq_department_college_name"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Department {self.name}>"
