from typing import Optional

from sqlalchemy.orm import Session

from backend.app.core.exceptions import AuthorizationError, StateConflictError, ValidationError
from backend.app.core.security import get_password_hash
from backend.app.models.guardian_link import GuardianStudentLink
from backend.app.models.user import ROLE_STUDENT, User

BOOKING_FOR_SELF = "self"
BOOKING_FOR_CHILD = "child"


def create_or_get_student_user(db: Session, email: str, name: Optional[str] = None, password: Optional[str] = None) -> User:
    """
    Idempotent-ish helper:
    - If a student with this email exists, return it.
    - Otherwise, create a new student account (no password means no login yet).
    """
    user = db.query(User).filter(User.email == email).first()
    if user:
        if user.role != ROLE_STUDENT:
            raise StateConflictError("This email belongs to an account that cannot be linked as a child.")
        return user

    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash(password) if password else None,
        role=ROLE_STUDENT,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def link_guardian_to_student(db: Session, guardian: User, student: User, is_primary: bool = True) -> GuardianStudentLink:
    """Ensures a link between guardian and student, updating is_primary when it already exists."""
    link = (
        db.query(GuardianStudentLink)
        .filter(GuardianStudentLink.guardian_user_id == guardian.id, GuardianStudentLink.student_user_id == student.id)
        .first()
    )
    if link:
        link.is_primary = is_primary
        return link
    link = GuardianStudentLink(guardian_user_id=guardian.id, student_user_id=student.id, is_primary=is_primary)
    db.add(link)
    db.flush()
    return link


def get_guardian_children(db: Session, guardian: User) -> list[User]:
    """Convenience function to list a guardian's linked students."""
    return [link.student for link in guardian.guardian_links]


def resolve_booking_student(db: Session, guardian: User, booking_for: str, child_id: Optional[int]) -> int:
    """Who the lesson is for: the guardian (when they learn too) or one of their linked children."""
    if booking_for == BOOKING_FOR_SELF:
        if not guardian.can_take_lessons:
            raise ValidationError(
                "You are not registered as a learner.",
                errors={"booking_for": ["Booking for yourself requires a learner account."]},
            )
        return guardian.id
    if booking_for == BOOKING_FOR_CHILD:
        if child_id is None:
            raise ValidationError("Please select a child.", errors={"child_id": ["This field is required when booking for a child."]})
        link = (
            db.query(GuardianStudentLink)
            .filter(GuardianStudentLink.guardian_user_id == guardian.id, GuardianStudentLink.student_user_id == child_id)
            .first()
        )
        if link is None:
            raise AuthorizationError("This student is not linked to your account.")
        return child_id
    raise ValidationError("Invalid booking target.", errors={"booking_for": ["Must be 'self' or 'child'."]})
