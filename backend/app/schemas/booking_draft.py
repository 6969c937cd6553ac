from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingDraftCreate(BaseModel):
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    dates: List[date] = Field(default_factory=list)
    availability_ids: List[int] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    note: Optional[str] = None


class BookingDraftUpdate(BaseModel):
    version: int
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    dates: Optional[List[date]] = None
    availability_ids: Optional[List[int]] = None
    subjects: Optional[List[str]] = None
    note: Optional[str] = None


class BookingDraftRead(BaseModel):
    draft_uuid: str
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    dates: List[date]
    availability_ids: List[int]
    subjects: List[str]
    note: Optional[str] = None
    version: int
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
