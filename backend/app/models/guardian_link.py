"""Guardian-student link: which learners a guardian may book for."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base


class GuardianStudentLink(Base):
    __tablename__ = "guardian_student_links"

    id = Column(Integer, primary_key=True, index=True)
    guardian_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("guardian_user_id", "student_user_id", name="uq_guardian_student_link"),
    )

    guardian = relationship("User", back_populates="guardian_links", foreign_keys=[guardian_user_id])
    student = relationship("User", back_populates="ward_links", foreign_keys=[student_user_id])
