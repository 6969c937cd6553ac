"""Teacher availability windows and the per-teacher holiday flag."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class TeacherAvailability(Base):
    """One recurring weekly window. Several windows per day are allowed and never merged."""

    __tablename__ = "teacher_availabilities"

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # 0 = Sunday … 6 = Saturday
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    time_zone = Column(String(64), nullable=False, default="Africa/Lagos")
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    teacher = relationship("User", back_populates="availabilities", foreign_keys=[teacher_id])


class AvailabilityPreference(Base):
    __tablename__ = "availability_preferences"
    __table_args__ = (UniqueConstraint("teacher_id", name="uq_availability_preference_teacher"),)

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    holiday_mode = Column(Boolean, nullable=False, default=False)
    time_zone = Column(String(64), nullable=False, default="Africa/Lagos")
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    teacher = relationship("User", back_populates="availability_preference")
