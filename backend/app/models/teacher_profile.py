from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now

CURRENCY_NGN = "NGN"
CURRENCY_USD = "USD"


class TeacherProfile(Base):
    __tablename__ = "teacher_profiles"
    __table_args__ = (UniqueConstraint("user_id", name="uq_teacher_profile_user"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    hourly_rate_ngn = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    hourly_rate_usd = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    preferred_currency = Column(String(3), nullable=False, default=CURRENCY_NGN)
    # Comma separated, e.g. "Tajweed,Hifz".
    specializations = Column(Text, nullable=True)
    experience_years = Column(Integer, nullable=True)
    verification_status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="teacher_profile")
    subjects = relationship("Subject", back_populates="teacher_profile", cascade="all, delete-orphan")

    @property
    def specialization_list(self) -> list[str]:
        if not self.specializations:
            return []
        return [part.strip() for part in self.specializations.split(",") if part.strip()]

    @property
    def active_subject_names(self) -> list[str]:
        return [subject.name for subject in self.subjects if subject.is_active]
