from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RescheduleModificationCreate(BaseModel):
    booking_id: int
    new_date: date
    new_start_time: time
    new_end_time: time
    reason: Optional[str] = Field(default=None, max_length=1000)
    is_urgent: bool = False


class RebookModificationCreate(RescheduleModificationCreate):
    new_teacher_id: int
    new_subject_id: Optional[int] = None


class ModificationResponse(BaseModel):
    teacher_notes: Optional[str] = Field(default=None, max_length=1000)


class BookingModificationRead(BaseModel):
    id: int
    modification_uuid: str
    booking_id: int
    student_id: int
    teacher_id: int
    type: str
    formatted_type: str
    status: str
    original_booking_date: date
    original_start_time: time
    original_end_time: time
    new_booking_date: date
    new_start_time: time
    new_end_time: time
    new_duration_minutes: int
    new_teacher_id: Optional[int] = None
    new_subject_id: Optional[int] = None
    new_booking_id: Optional[int] = None
    reason: Optional[str] = None
    teacher_notes: Optional[str] = None
    price_difference: Optional[Decimal] = None
    is_urgent: bool
    modification_history: List[Dict[str, Any]] = Field(default_factory=list)
    requested_at: datetime
    responded_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
