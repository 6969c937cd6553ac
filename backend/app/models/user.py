from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base

ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ROLE_GUARDIAN = "guardian"
ROLE_ADMIN = "admin"
ROLES = (ROLE_TEACHER, ROLE_STUDENT, ROLE_GUARDIAN, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_STUDENT)
    # Guardians who also take lessons themselves.
    is_learner = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    avatar_url = Column(String(512), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    teacher_profile = relationship("TeacherProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    availabilities = relationship(
        "TeacherAvailability", back_populates="teacher", cascade="all, delete-orphan", foreign_keys="TeacherAvailability.teacher_id"
    )
    availability_preference = relationship("AvailabilityPreference", back_populates="teacher", uselist=False, cascade="all, delete-orphan")
    guardian_links = relationship(
        "GuardianStudentLink", back_populates="guardian", cascade="all, delete-orphan", foreign_keys="GuardianStudentLink.guardian_user_id"
    )
    ward_links = relationship(
        "GuardianStudentLink", back_populates="student", cascade="all, delete-orphan", foreign_keys="GuardianStudentLink.student_user_id"
    )
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def can_take_lessons(self) -> bool:
        return self.role == ROLE_STUDENT or (self.role == ROLE_GUARDIAN and bool(self.is_learner))
