"""Booking lifecycle: create, approve, reject, reschedule, cancel, complete.

Every operation runs in one transaction. Status changes are conditional
updates (``UPDATE … WHERE status IN (…)``) so two concurrent requests cannot
both move the same booking; the loser sees zero affected rows and gets a
state conflict. Notifications are sent after commit.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.core.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    ServiceUnavailableError,
    StateConflictError,
    ValidationError,
)
from backend.app.core.time import minutes_between, utc_now, utc_today
from backend.app.models.booking import (
    CANCELLABLE_STATUSES,
    STATUS_APPROVED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    STATUS_REJECTED,
    TERMINAL_STATUSES,
    Booking,
)
from backend.app.models.booking_history import BookingHistory
from backend.app.models.guardian_link import GuardianStudentLink
from backend.app.models.subject import Subject
from backend.app.models.teacher_profile import TeacherProfile
from backend.app.models.teaching_session import SESSION_CANCELLED, SESSION_COMPLETED, SESSION_SCHEDULED, TeachingSession
from backend.app.models.user import ROLE_TEACHER, User
from backend.app.services.availability import Slot, ensure_not_on_holiday
from backend.app.services.notifications import BookingNotifier
from backend.app.services.rate_lock import RateLocker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMeta:
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@contextmanager
def unit_of_work(db: Session, action: str, conflict: Optional[str] = None):
    """Commit on success; roll back and translate database failures otherwise.

    When ``conflict`` is given, a unique constraint violation means another
    request got there first and is reported as a state conflict.
    """
    try:
        yield
        db.commit()
    except DomainError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if conflict is None:
            logger.exception("Database error while trying to %s", action)
            raise ServiceUnavailableError("Unable to complete the request. Please try again.") from exc
        logger.warning("Lost a concurrent attempt to %s", action)
        raise StateConflictError(conflict) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error while trying to %s", action)
        raise ServiceUnavailableError("Unable to complete the request. Please try again.") from exc


def new_booking_uuid() -> str:
    return f"BK-{utc_today():%y%m%d}{uuid.uuid4().hex[:8].upper()}"


def _serialize_schedule(booking_date: date, start_time: time, end_time: time) -> Dict[str, Any]:
    return {
        "booking_date": booking_date.isoformat(),
        "start_time": start_time.strftime("%H:%M"),
        "end_time": end_time.strftime("%H:%M"),
    }


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found.")
    return booking


def is_linked_guardian(db: Session, guardian_id: int, student_id: int) -> bool:
    return (
        db.query(GuardianStudentLink)
        .filter(GuardianStudentLink.guardian_user_id == guardian_id, GuardianStudentLink.student_user_id == student_id)
        .first()
        is not None
    )


def is_party(db: Session, booking: Booking, user: User) -> bool:
    """Admins, the teacher, the student, the creator and linked guardians may view or cancel."""
    if user.is_admin:
        return True
    if user.id in (booking.teacher_id, booking.student_id, booking.created_by_id):
        return True
    return is_linked_guardian(db, user.id, booking.student_id)


def get_booking_for_user(db: Session, booking_id: int, user: User) -> Booking:
    booking = get_booking(db, booking_id)
    if not is_party(db, booking, user):
        raise AuthorizationError("Unauthorized access to booking.")
    return booking


def _ensure_teacher_owns(booking: Booking, teacher: User) -> None:
    if booking.teacher_id != teacher.id:
        raise AuthorizationError("Unauthorized access to booking.")


def transition_status(db: Session, booking: Booking, allowed: Sequence[str], values: Dict[str, Any], verb: str) -> None:
    """Move the booking only if it is still in one of ``allowed``."""
    if booking.status not in allowed:
        raise StateConflictError(f"Booking cannot be {verb} in its current status.")
    updated = (
        db.query(Booking)
        .filter(Booking.id == booking.id, Booking.status.in_(list(allowed)))
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        raise StateConflictError(f"Booking cannot be {verb} in its current status.")


def record_history(
    db: Session,
    booking: Booking,
    action: str,
    previous_data: Dict[str, Any],
    new_data: Dict[str, Any],
    performed_by_id: int,
    notes: Optional[str],
    meta: Optional[RequestMeta],
) -> BookingHistory:
    meta = meta or RequestMeta()
    entry = BookingHistory(
        booking_id=booking.id,
        action=action,
        previous_data=previous_data,
        new_data=new_data,
        performed_by_id=performed_by_id,
        notes=notes,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent[:512] if meta.user_agent else None,
    )
    db.add(entry)
    return entry


def ensure_teaching_session(db: Session, booking: Booking) -> TeachingSession:
    """Return the booking's session, creating it once."""
    existing = db.query(TeachingSession).filter(TeachingSession.booking_id == booking.id).first()
    if existing is not None:
        return existing
    session = TeachingSession(
        session_uuid=f"S-{uuid.uuid4().hex[:12].upper()}",
        booking_id=booking.id,
        teacher_id=booking.teacher_id,
        student_id=booking.student_id,
        subject_id=booking.subject_id,
        session_date=booking.booking_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        status=SESSION_SCHEDULED,
    )
    db.add(session)
    db.flush()
    return session


def resolve_subject(db: Session, teacher_id: int, subject_names: Iterable[str]) -> Optional[Subject]:
    """Pick the teacher's subject matching the first requested name, else their first active subject."""
    subjects = (
        db.query(Subject)
        .join(TeacherProfile, Subject.teacher_profile_id == TeacherProfile.id)
        .filter(TeacherProfile.user_id == teacher_id, Subject.is_active.is_(True))
        .order_by(Subject.id)
        .all()
    )
    for name in subject_names:
        needle = name.strip().lower()
        if not needle:
            continue
        for subject in subjects:
            if needle in subject.name.lower():
                return subject
        break
    return subjects[0] if subjects else None


def subject_for_booking(db: Session, teacher_id: int, subject_id: Optional[int], subject_names: Iterable[str]) -> Optional[int]:
    if subject_id is None:
        subject = resolve_subject(db, teacher_id, subject_names)
        return subject.id if subject else None
    owned = (
        db.query(Subject.id)
        .join(TeacherProfile, Subject.teacher_profile_id == TeacherProfile.id)
        .filter(Subject.id == subject_id, TeacherProfile.user_id == teacher_id, Subject.is_active.is_(True))
        .first()
    )
    if owned is None:
        raise ValidationError("Invalid subject.", errors={"subject_id": ["The subject is not offered by this teacher."]})
    return subject_id


def create_bookings(
    db: Session,
    actor: User,
    student_id: int,
    teacher_id: int,
    subject_id: Optional[int],
    slots: Sequence[Slot],
    notes: Optional[str],
    rate_locker: RateLocker,
) -> List[Booking]:
    """Create one pending booking per slot with the teacher's current rates locked in."""
    if not slots:
        raise ValidationError("Please select at least one date and time slot.")
    teacher = db.get(User, teacher_id)
    if teacher is None or teacher.role != ROLE_TEACHER:
        raise NotFoundError("Teacher not found.")
    if student_id == teacher_id:
        raise ValidationError("Teachers cannot book sessions with themselves.")

    rate = rate_locker.lock(db, teacher_id)
    bookings: List[Booking] = []
    with unit_of_work(db, "create bookings"):
        # Checked again right before insert to keep the holiday window small.
        ensure_not_on_holiday(db, teacher_id)
        for slot in slots:
            booking = Booking(
                booking_uuid=new_booking_uuid(),
                student_id=student_id,
                teacher_id=teacher_id,
                subject_id=subject_id,
                booking_date=slot.booking_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                duration_minutes=slot.duration_minutes,
                status=STATUS_PENDING,
                notes=notes,
                created_by_id=actor.id,
            )
            rate.apply(booking)
            db.add(booking)
            bookings.append(booking)
        db.flush()

    for booking in bookings:
        db.refresh(booking)
        logger.info("Booking %s created by user %s for teacher %s", booking.id, actor.id, teacher_id)
    notifier = BookingNotifier(db)
    for booking in bookings:
        notifier.booking_created(booking)
    return bookings


def approve_booking(db: Session, booking_id: int, teacher: User) -> Booking:
    booking = get_booking(db, booking_id)
    _ensure_teacher_owns(booking, teacher)
    with unit_of_work(db, "approve booking", conflict="Booking cannot be approved in its current status."):
        transition_status(
            db,
            booking,
            [STATUS_PENDING],
            {Booking.status: STATUS_APPROVED, Booking.approved_by_id: teacher.id, Booking.approved_at: utc_now()},
            "approved",
        )
        ensure_teaching_session(db, booking)
    db.refresh(booking)
    logger.info("Booking %s approved by teacher %s", booking.id, teacher.id)
    BookingNotifier(db).booking_approved(booking)
    return booking


def reject_booking(db: Session, booking_id: int, teacher: User, reason: Optional[str] = None) -> Booking:
    booking = get_booking(db, booking_id)
    _ensure_teacher_owns(booking, teacher)
    with unit_of_work(db, "reject booking"):
        transition_status(
            db,
            booking,
            [STATUS_PENDING],
            {
                Booking.status: STATUS_REJECTED,
                Booking.rejected_by_id: teacher.id,
                Booking.rejected_at: utc_now(),
                Booking.rejection_reason: reason,
            },
            "rejected",
        )
    db.refresh(booking)
    logger.info("Booking %s rejected by teacher %s", booking.id, teacher.id)
    BookingNotifier(db).booking_rejected(booking, reason)
    return booking


def validate_new_schedule(new_date: date, new_start: time, new_end: time) -> None:
    errors = {}
    if new_date <= utc_today():
        errors["new_date"] = ["The new date must be after today."]
    if new_end <= new_start:
        errors["new_end_time"] = ["The end time must be after the start time."]
    if errors:
        raise ValidationError("Invalid reschedule request.", errors=errors)


def apply_schedule_change(
    db: Session,
    booking: Booking,
    actor_id: int,
    new_date: date,
    new_start: time,
    new_end: time,
    reason: Optional[str],
    meta: Optional[RequestMeta],
) -> tuple[Dict[str, Any], Dict[str, Any]]:
    """Rewrite the booking and its session and append a ``rescheduled`` history entry.

    Runs inside the caller's transaction.
    """
    old_data = _serialize_schedule(booking.booking_date, booking.start_time, booking.end_time)
    new_data = {
        **_serialize_schedule(new_date, new_start, new_end),
        "rescheduled_by_id": actor_id,
        "reschedule_reason": reason,
    }

    booking.booking_date = new_date
    booking.start_time = new_start
    booking.end_time = new_end
    booking.duration_minutes = minutes_between(new_start, new_end)
    booking.rescheduled_by_id = actor_id
    booking.rescheduled_at = utc_now()
    booking.reschedule_reason = reason

    session = db.query(TeachingSession).filter(TeachingSession.booking_id == booking.id).first()
    if session is not None:
        session.session_date = new_date
        session.start_time = new_start
        session.end_time = new_end

    record_history(db, booking, "rescheduled", old_data, new_data, actor_id, reason, meta)
    return old_data, new_data


def reschedule_booking(
    db: Session,
    booking_id: int,
    teacher: User,
    new_date: date,
    new_start: time,
    new_end: time,
    reason: Optional[str] = None,
    meta: Optional[RequestMeta] = None,
) -> Booking:
    booking = get_booking(db, booking_id)
    _ensure_teacher_owns(booking, teacher)
    validate_new_schedule(new_date, new_start, new_end)
    if booking.status in TERMINAL_STATUSES:
        raise StateConflictError("Booking cannot be rescheduled in its current status.")

    with unit_of_work(db, "reschedule booking"):
        old_data, new_data = apply_schedule_change(db, booking, teacher.id, new_date, new_start, new_end, reason, meta)
    db.refresh(booking)
    logger.info("Booking %s rescheduled by teacher %s to %s %s", booking.id, teacher.id, new_date, new_start)
    BookingNotifier(db).booking_rescheduled(booking, old_data, new_data)
    return booking


def cancel_booking(
    db: Session,
    booking_id: int,
    actor: User,
    reason: Optional[str] = None,
    meta: Optional[RequestMeta] = None,
) -> Booking:
    booking = get_booking(db, booking_id)
    if not is_party(db, booking, actor):
        raise AuthorizationError("Unauthorized access to booking.")

    previous_status = booking.status
    with unit_of_work(db, "cancel booking"):
        transition_status(
            db,
            booking,
            CANCELLABLE_STATUSES,
            {
                Booking.status: STATUS_CANCELLED,
                Booking.cancelled_by_id: actor.id,
                Booking.cancelled_at: utc_now(),
                Booking.cancellation_reason: reason,
            },
            "cancelled",
        )
        (
            db.query(TeachingSession)
            .filter(TeachingSession.booking_id == booking.id)
            .update({TeachingSession.status: SESSION_CANCELLED}, synchronize_session=False)
        )
        record_history(
            db,
            booking,
            "cancelled",
            {"status": previous_status},
            {"status": STATUS_CANCELLED, "reason": reason},
            actor.id,
            reason,
            meta,
        )
    db.refresh(booking)
    logger.info("Booking %s cancelled by user %s (was %s)", booking.id, actor.id, previous_status)
    BookingNotifier(db).booking_cancelled(booking, reason)
    return booking


def complete_booking(db: Session, booking_id: int, teacher: User) -> Booking:
    booking = get_booking(db, booking_id)
    _ensure_teacher_owns(booking, teacher)
    now = utc_now()
    with unit_of_work(db, "complete booking"):
        transition_status(
            db,
            booking,
            [STATUS_APPROVED, STATUS_CONFIRMED],
            {Booking.status: STATUS_COMPLETED, Booking.completed_at: now},
            "completed",
        )
        (
            db.query(TeachingSession)
            .filter(TeachingSession.booking_id == booking.id)
            .update({TeachingSession.status: SESSION_COMPLETED, TeachingSession.completion_date: now}, synchronize_session=False)
        )
    db.refresh(booking)
    logger.info("Booking %s completed by teacher %s", booking.id, teacher.id)
    BookingNotifier(db).booking_completed(booking)
    return booking


def list_teacher_bookings(db: Session, teacher_id: int, status: Optional[str] = None) -> List[Booking]:
    query = db.query(Booking).filter(Booking.teacher_id == teacher_id)
    if status:
        query = query.filter(Booking.status == status)
    return query.order_by(Booking.booking_date.desc(), Booking.start_time.desc()).all()


def list_student_bookings(db: Session, student_id: int, status: Optional[str] = None) -> List[Booking]:
    query = db.query(Booking).filter(Booking.student_id == student_id)
    if status:
        query = query.filter(Booking.status == status)
    return query.order_by(Booking.booking_date.desc(), Booking.start_time.desc()).all()


def list_guardian_bookings(db: Session, guardian_id: int) -> List[Booking]:
    child_ids = [
        link.student_user_id
        for link in db.query(GuardianStudentLink).filter(GuardianStudentLink.guardian_user_id == guardian_id).all()
    ]
    conditions = [Booking.created_by_id == guardian_id, Booking.student_id == guardian_id]
    if child_ids:
        conditions.append(Booking.student_id.in_(child_ids))
    return db.query(Booking).filter(or_(*conditions)).order_by(Booking.booking_date.desc(), Booking.start_time.desc()).all()
