from typing import List, Optional
from datetime import datetime

from app.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: str
    title: str
    created_at: datetime
    college_ids: List[str] = []
    is_read: Optional[bool] = None


class LoadBalancingPdfResponse(CamelModel):
    id: str
    title: str
    college_id: str
    college_name: Optional[str] = None
    created_at: datetime
