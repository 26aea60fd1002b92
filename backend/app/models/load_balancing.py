from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class LoadBalancingPdf(Base):
    """Teaching-load distribution document uploaded by a college"""
    __tablename__ = "load_balancing_pdfs"
    __table_args__ = (
        UniqueConstraint("college_id", "title", name="uq_load_balancing_college_title"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    pdf_path = Column(String(500), nullable=False)
    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<LoadBalancingPdf {self.title}>"
