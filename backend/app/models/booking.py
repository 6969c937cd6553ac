"""Booking model: one requested lesson slot between a student and a teacher."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_CONFIRMED = "confirmed"
STATUS_DECLINED = "declined"
STATUS_REJECTED = "rejected"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"

BOOKING_STATUSES = (
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_CONFIRMED,
    STATUS_DECLINED,
    STATUS_REJECTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
)
# Statuses that still hold the teacher's time.
LIVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_CONFIRMED)
CANCELLABLE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)
TERMINAL_STATUSES = (STATUS_DECLINED, STATUS_REJECTED, STATUS_CANCELLED, STATUS_COMPLETED)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_uuid = Column(String(64), nullable=False, unique=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    notes = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Locked at creation and never rewritten.
    hourly_rate_ngn = Column(Numeric(12, 2), nullable=False)
    hourly_rate_usd = Column(Numeric(10, 2), nullable=False)
    rate_currency = Column(String(3), nullable=False)
    exchange_rate_used = Column(Numeric(14, 4), nullable=False)
    rate_locked_at = Column(DateTime(timezone=True), nullable=False)

    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rescheduled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    rescheduled_at = Column(DateTime(timezone=True), nullable=True)
    reschedule_reason = Column(Text, nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    student = relationship("User", foreign_keys=[student_id])
    teacher = relationship("User", foreign_keys=[teacher_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    subject = relationship("Subject")
    teaching_session = relationship("TeachingSession", back_populates="booking", uselist=False)
    history = relationship("BookingHistory", back_populates="booking", order_by="BookingHistory.id")
    modifications = relationship("BookingModification", back_populates="booking", foreign_keys="BookingModification.booking_id")

    @property
    def subject_name(self) -> str | None:
        return self.subject.name if self.subject is not None else None
