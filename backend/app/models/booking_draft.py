"""Explicit, versioned draft of a multi-step booking form."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class BookingDraft(Base):
    __tablename__ = "booking_drafts"

    id = Column(Integer, primary_key=True, index=True)
    draft_uuid = Column(String(64), nullable=False, unique=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    dates = Column(JSON, nullable=False, default=list)
    availability_ids = Column(JSON, nullable=False, default=list)
    subjects = Column(JSON, nullable=False, default=list)
    note = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)
