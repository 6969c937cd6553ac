"""Teaching session created when a booking is approved."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now

SESSION_SCHEDULED = "scheduled"
SESSION_CANCELLED = "cancelled"
SESSION_COMPLETED = "completed"


class TeachingSession(Base):
    __tablename__ = "teaching_sessions"
    __table_args__ = (UniqueConstraint("booking_id", name="uq_teaching_session_booking"),)

    id = Column(Integer, primary_key=True, index=True)
    session_uuid = Column(String(64), nullable=False, unique=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)
    session_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=SESSION_SCHEDULED)
    meeting_platform = Column(String(30), nullable=False, default="zoom")
    meeting_link = Column(String(512), nullable=True)
    teacher_notes = Column(Text, nullable=True)
    student_notes = Column(Text, nullable=True)
    teacher_rating = Column(Numeric(3, 2), nullable=True)
    student_rating = Column(Numeric(3, 2), nullable=True)
    completion_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    booking = relationship("Booking", back_populates="teaching_session")
