"""Student-initiated reschedule/rebook requests, approved separately from the booking."""

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now

TYPE_RESCHEDULE = "reschedule"
TYPE_REBOOK = "rebook"

MOD_PENDING = "pending"
MOD_APPROVED = "approved"
MOD_REJECTED = "rejected"
MOD_EXPIRED = "expired"
MOD_CANCELLED = "cancelled"
MOD_COMPLETED = "completed"

OPEN_MODIFICATION_STATUSES = (MOD_PENDING, MOD_APPROVED)


class BookingModification(Base):
    __tablename__ = "booking_modifications"

    id = Column(Integer, primary_key=True, index=True)
    modification_uuid = Column(String(64), nullable=False, unique=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=MOD_PENDING, index=True)

    original_booking_date = Column(Date, nullable=False)
    original_start_time = Column(Time, nullable=False)
    original_end_time = Column(Time, nullable=False)
    original_duration_minutes = Column(Integer, nullable=False)
    new_booking_date = Column(Date, nullable=False)
    new_start_time = Column(Time, nullable=False)
    new_end_time = Column(Time, nullable=False)
    new_duration_minutes = Column(Integer, nullable=False)
    new_meeting_platform = Column(String(30), nullable=False, default="zoom")
    new_teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    new_subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)
    new_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)

    reason = Column(Text, nullable=True)
    teacher_notes = Column(Text, nullable=True)
    price_difference = Column(Numeric(12, 2), nullable=True)
    is_urgent = Column(Boolean, nullable=False, default=False)
    modification_history = Column(JSON, nullable=False, default=list)

    requested_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    booking = relationship("Booking", back_populates="modifications", foreign_keys=[booking_id])
    new_booking = relationship("Booking", foreign_keys=[new_booking_id])

    @property
    def target_teacher_id(self) -> int:
        """The teacher who must answer the request."""
        if self.type == TYPE_REBOOK and self.new_teacher_id is not None:
            return self.new_teacher_id
        return self.teacher_id

    @property
    def formatted_type(self) -> str:
        return {TYPE_RESCHEDULE: "Reschedule Request", TYPE_REBOOK: "Rebook Request"}.get(self.type, "Booking Modification")
