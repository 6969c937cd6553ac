"""Booking schemas."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingSubmission(BaseModel):
    """Booking request from a student; fields left empty are taken from the draft."""

    teacher_id: Optional[int] = None
    dates: List[date] = Field(default_factory=list)
    availability_ids: List[int] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    subject_id: Optional[int] = None
    note: Optional[str] = Field(default=None, max_length=1000)
    draft_uuid: Optional[str] = None


class GuardianBookingSubmission(BookingSubmission):
    booking_for: Literal["self", "child"] = "child"
    child_id: Optional[int] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class RescheduleRequest(BaseModel):
    new_date: date
    new_start_time: time
    new_end_time: time
    reason: Optional[str] = Field(default=None, max_length=500)


class TeachingSessionRead(BaseModel):
    id: int
    session_uuid: str
    session_date: date
    start_time: time
    end_time: time
    status: str
    meeting_platform: str
    meeting_link: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BookingHistoryRead(BaseModel):
    id: int
    action: str
    previous_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None
    performed_by_id: Optional[int] = None
    notes: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingRead(BaseModel):
    id: int
    booking_uuid: str
    student_id: int
    teacher_id: int
    subject_id: Optional[int] = None
    subject_name: Optional[str] = None
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    hourly_rate_ngn: Decimal
    hourly_rate_usd: Decimal
    rate_currency: str
    exchange_rate_used: Decimal
    rate_locked_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    reschedule_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[int] = None
    cancellation_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    teaching_session: Optional[TeachingSessionRead] = None

    model_config = ConfigDict(from_attributes=True)


class BookingDetail(BookingRead):
    history: List[BookingHistoryRead] = Field(default_factory=list)
