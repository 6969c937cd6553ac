from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    id: int
    type: str
    title: str
    body: str
    data: Optional[Dict[str, Any]] = None
    booking_id: Optional[int] = None
    modification_id: Optional[int] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
