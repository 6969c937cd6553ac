import logging
import os
from datetime import time
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app.core.security import get_password_hash
from backend.app.models.availability import TeacherAvailability
from backend.app.models.guardian_link import GuardianStudentLink
from backend.app.models.subject import Subject
from backend.app.models.teacher_profile import TeacherProfile
from backend.app.models.user import ROLE_GUARDIAN, ROLE_STUDENT, ROLE_TEACHER, User

logger = logging.getLogger(__name__)

DEFAULT_DEV_PASSWORD = "Secret123!"
DEV_TEACHER_EMAIL = "teacher@test.com"
DEV_GUARDIAN_EMAIL = "guardian@test.com"
DEV_STUDENT_EMAIL = "student@test.com"


def _get_or_create_user(db: Session, email: str, name: str, role: str, **extra) -> tuple[User, bool]:
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user, False
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash(DEFAULT_DEV_PASSWORD),
        role=role,
        is_active=True,
        **extra,
    )
    db.add(user)
    db.flush()
    return user, True


def ensure_default_dev_users(db: Session) -> None:
    """
    Create a teacher with rates and weekday evening availability, and a guardian
    linked to a student, for local development.
    Skips execution when running under pytest to avoid altering test expectations.
    """
    if os.getenv("PYTEST_CURRENT_TEST"):
        return

    teacher, teacher_created = _get_or_create_user(db, DEV_TEACHER_EMAIL, "Demo Teacher", ROLE_TEACHER)
    if teacher_created:
        profile = TeacherProfile(
            user_id=teacher.id,
            hourly_rate_ngn=Decimal("5000.00"),
            hourly_rate_usd=Decimal("3.50"),
            preferred_currency="NGN",
            specializations="Tajweed,Hifz",
            experience_years=5,
            verification_status="verified",
        )
        profile.subjects.append(Subject(name="Tajweed", is_active=True))
        profile.subjects.append(Subject(name="Quran Memorization (Hifz)", is_active=True))
        db.add(profile)
        for day_of_week in range(1, 6):
            db.add(TeacherAvailability(teacher_id=teacher.id, day_of_week=day_of_week, start_time=time(18, 0), end_time=time(19, 0)))

    guardian, guardian_created = _get_or_create_user(db, DEV_GUARDIAN_EMAIL, "Demo Guardian", ROLE_GUARDIAN, is_learner=True)
    student, _ = _get_or_create_user(db, DEV_STUDENT_EMAIL, "Demo Student", ROLE_STUDENT)
    if guardian_created:
        db.add(GuardianStudentLink(guardian_user_id=guardian.id, student_user_id=student.id, is_primary=True))

    db.commit()
    if teacher_created or guardian_created:
        logger.info("Seeded development users (password %s)", DEFAULT_DEV_PASSWORD)
