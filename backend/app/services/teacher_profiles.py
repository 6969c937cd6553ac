"""Teacher pricing and subjects.

Rates here are the live rates. Bookings copy them when created, so an update
never reaches an existing booking.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from backend.app.core.exceptions import ValidationError
from backend.app.models.subject import Subject
from backend.app.models.teacher_profile import CURRENCY_NGN, CURRENCY_USD, TeacherProfile
from backend.app.models.user import User

logger = logging.getLogger(__name__)


def get_or_create_profile(db: Session, teacher: User) -> TeacherProfile:
    profile = db.query(TeacherProfile).filter(TeacherProfile.user_id == teacher.id).first()
    if profile:
        return profile
    profile = TeacherProfile(
        user_id=teacher.id,
        hourly_rate_ngn=Decimal("0.00"),
        hourly_rate_usd=Decimal("0.00"),
        preferred_currency=CURRENCY_NGN,
    )
    db.add(profile)
    db.flush()
    return profile


def replace_subjects(db: Session, profile: TeacherProfile, names: Iterable[str]) -> None:
    """Keep matching subjects (reactivating them), deactivate the rest, add new names."""
    wanted = []
    for name in names:
        cleaned = name.strip()
        if cleaned and cleaned.lower() not in [w.lower() for w in wanted]:
            wanted.append(cleaned)
    existing = {subject.name.lower(): subject for subject in profile.subjects}
    for subject in profile.subjects:
        subject.is_active = subject.name.lower() in [w.lower() for w in wanted]
    for name in wanted:
        if name.lower() not in existing:
            profile.subjects.append(Subject(name=name, is_active=True))
    db.flush()


def update_profile(
    db: Session,
    teacher: User,
    hourly_rate_ngn: Optional[Decimal] = None,
    hourly_rate_usd: Optional[Decimal] = None,
    preferred_currency: Optional[str] = None,
    specializations: Optional[list[str]] = None,
    experience_years: Optional[int] = None,
    subjects: Optional[list[str]] = None,
) -> TeacherProfile:
    profile = get_or_create_profile(db, teacher)
    if preferred_currency is not None:
        if preferred_currency not in (CURRENCY_NGN, CURRENCY_USD):
            raise ValidationError("Invalid currency.", errors={"preferred_currency": ["Must be NGN or USD."]})
        profile.preferred_currency = preferred_currency
    if hourly_rate_ngn is not None:
        profile.hourly_rate_ngn = hourly_rate_ngn
    if hourly_rate_usd is not None:
        profile.hourly_rate_usd = hourly_rate_usd
    if specializations is not None:
        profile.specializations = ",".join(part.strip() for part in specializations if part.strip()) or None
    if experience_years is not None:
        profile.experience_years = experience_years
    if subjects is not None:
        replace_subjects(db, profile, subjects)
    db.commit()
    db.refresh(profile)
    logger.info("Teacher %s updated their profile", teacher.id)
    return profile
