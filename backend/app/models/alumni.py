from sqlalchemy import Column, String, DateTime, Date, Integer, Float, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class AlumnusProfile(Base):
    """Career details an alumnus supplies at self-registration"""
    __tablename__ = "alumni_profiles"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)

    graduation_year = Column(Integer, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    address = Column(String(255), nullable=True)
    gpa = Column(Float, nullable=True)

    job_status = Column(String(100), nullable=True)
    current_employer = Column(String(255), nullable=True)
    current_position = Column(String(255), nullable=True)
    industry = Column(String(255), nullable=True)
    linked_in_profile = Column(String(500), nullable=True)
    achievements = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<AlumnusProfile {self.user_id} ({self.graduation_year})>"
