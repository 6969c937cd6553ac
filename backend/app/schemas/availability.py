"""Availability schemas: normalised windows plus the legacy day schedule shape."""

from datetime import time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WindowIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time


class DaySchedule(BaseModel):
    day: str
    enabled: bool = False
    fromTime: Optional[str] = None
    toTime: Optional[str] = None


class AvailabilityUpdate(BaseModel):
    holiday_mode: Optional[bool] = None
    time_zone: Optional[str] = None
    windows: Optional[List[WindowIn]] = None
    day_schedules: Optional[List[DaySchedule]] = None


class AvailabilityWindowRead(BaseModel):
    id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool
    time_zone: str

    model_config = ConfigDict(from_attributes=True)


class AvailabilityRead(BaseModel):
    teacher_id: int
    holiday_mode: bool
    time_zone: str
    windows: List[AvailabilityWindowRead]
    day_schedules: List[DaySchedule]
