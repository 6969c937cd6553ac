"""Student reschedule and rebook requests.

A request is answered by its target teacher: the booking's teacher for a
reschedule, the new teacher for a rebook. Approval applies the change in the
same transaction and leaves the request ``completed``.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.app.core.exceptions import AuthorizationError, NotFoundError, StateConflictError, ValidationError
from backend.app.core.settings import get_settings
from backend.app.core.time import as_utc, minutes_between, utc_now
from backend.app.models.booking import LIVE_STATUSES, STATUS_CANCELLED, STATUS_CONFIRMED, Booking
from backend.app.models.booking_modification import (
    MOD_CANCELLED,
    MOD_COMPLETED,
    MOD_EXPIRED,
    MOD_PENDING,
    MOD_REJECTED,
    OPEN_MODIFICATION_STATUSES,
    TYPE_REBOOK,
    TYPE_RESCHEDULE,
    BookingModification,
)
from backend.app.models.subject import Subject
from backend.app.models.teacher_profile import TeacherProfile
from backend.app.models.teaching_session import SESSION_CANCELLED, TeachingSession
from backend.app.models.user import ROLE_TEACHER, User
from backend.app.services.availability import ensure_not_on_holiday
from backend.app.services.bookings import (
    RequestMeta,
    apply_schedule_change,
    ensure_teaching_session,
    get_booking,
    is_linked_guardian,
    new_booking_uuid,
    record_history,
    transition_status,
    unit_of_work,
    validate_new_schedule,
)
from backend.app.services.notifications import BookingNotifier
from backend.app.services.rate_lock import RateLocker

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 30
MAX_DURATION_MINUTES = 480


def _history_entry(action: str, status: str, actor_id: Optional[int], notes: Optional[str] = None) -> Dict[str, Any]:
    return {"action": action, "status": status, "by": actor_id, "at": utc_now().isoformat(), "notes": notes}


def _append_history(modification: BookingModification, entry: Dict[str, Any]) -> None:
    # JSON columns do not track in-place mutation; assign a new list.
    modification.modification_history = [*(modification.modification_history or []), entry]


def get_modification(db: Session, modification_id: int) -> BookingModification:
    modification = db.get(BookingModification, modification_id)
    if modification is None:
        raise NotFoundError("Modification request not found.")
    return modification


def _ensure_requester(db: Session, booking: Booking, actor: User) -> None:
    if actor.id in (booking.student_id, booking.created_by_id):
        return
    if is_linked_guardian(db, actor.id, booking.student_id):
        return
    raise AuthorizationError("Unauthorized access to booking.")


def _validate_request(db: Session, booking: Booking, new_date: date, new_start: time, new_end: time) -> int:
    if booking.status not in LIVE_STATUSES:
        raise StateConflictError("This booking can no longer be modified.")
    validate_new_schedule(new_date, new_start, new_end)
    duration = minutes_between(new_start, new_end)
    if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
        raise ValidationError(
            "Invalid session duration.",
            errors={"new_end_time": [f"Sessions must last between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes."]},
        )
    open_request = (
        db.query(BookingModification)
        .filter(BookingModification.booking_id == booking.id, BookingModification.status.in_(OPEN_MODIFICATION_STATUSES))
        .first()
    )
    if open_request is not None:
        raise StateConflictError("A modification request is already pending for this booking.")
    return duration


def has_conflict(
    db: Session, teacher_id: int, on_date: date, start: time, end: time, exclude_booking_id: Optional[int] = None
) -> bool:
    """True when a live booking of the teacher overlaps the interval."""
    query = db.query(Booking.id).filter(
        Booking.teacher_id == teacher_id,
        Booking.booking_date == on_date,
        Booking.status.in_(LIVE_STATUSES),
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.first() is not None


def _rate_for_currency(profile: TeacherProfile, currency: str) -> Decimal:
    rate = profile.hourly_rate_usd if currency == "USD" else profile.hourly_rate_ngn
    return Decimal(rate or 0)


def rebook_price_difference(booking: Booking, new_profile: TeacherProfile, duration_minutes: int) -> Decimal:
    """(new hourly rate - originally locked rate) * new hours, in the booking's currency."""
    currency = booking.rate_currency
    original_rate = Decimal(booking.hourly_rate_usd if currency == "USD" else booking.hourly_rate_ngn)
    hours = Decimal(duration_minutes) / Decimal("60")
    return ((_rate_for_currency(new_profile, currency) - original_rate) * hours).quantize(Decimal("0.01"))


def _expiry(modification_type: str) -> datetime:
    settings = get_settings()
    days = (
        settings.modification_expiry_days_rebook
        if modification_type == TYPE_REBOOK
        else settings.modification_expiry_days_reschedule
    )
    return utc_now() + timedelta(days=days)


def _new_modification(
    booking: Booking,
    actor: User,
    type_: str,
    new_date: date,
    new_start: time,
    new_end: time,
    duration: int,
    reason: Optional[str],
    is_urgent: bool,
) -> BookingModification:
    modification = BookingModification(
        modification_uuid=f"MOD-{uuid.uuid4().hex[:12].upper()}",
        booking_id=booking.id,
        student_id=booking.student_id,
        teacher_id=booking.teacher_id,
        type=type_,
        status=MOD_PENDING,
        original_booking_date=booking.booking_date,
        original_start_time=booking.start_time,
        original_end_time=booking.end_time,
        original_duration_minutes=booking.duration_minutes,
        new_booking_date=new_date,
        new_start_time=new_start,
        new_end_time=new_end,
        new_duration_minutes=duration,
        reason=reason,
        is_urgent=is_urgent,
        requested_at=utc_now(),
        expires_at=_expiry(type_),
        created_by_id=actor.id,
        modification_history=[],
    )
    _append_history(modification, _history_entry("created", MOD_PENDING, actor.id, reason))
    return modification


def request_reschedule(
    db: Session,
    actor: User,
    booking_id: int,
    new_date: date,
    new_start: time,
    new_end: time,
    reason: Optional[str] = None,
    is_urgent: bool = False,
) -> BookingModification:
    booking = get_booking(db, booking_id)
    _ensure_requester(db, booking, actor)
    duration = _validate_request(db, booking, new_date, new_start, new_end)
    if has_conflict(db, booking.teacher_id, new_date, new_start, new_end, exclude_booking_id=booking.id):
        raise StateConflictError("The teacher already has a session at the requested time.")

    modification = _new_modification(booking, actor, TYPE_RESCHEDULE, new_date, new_start, new_end, duration, reason, is_urgent)
    with unit_of_work(db, "create reschedule request"):
        db.add(modification)
        db.flush()
    db.refresh(modification)
    logger.info("Reschedule request %s created for booking %s by user %s", modification.id, booking.id, actor.id)
    BookingNotifier(db).modification_event(
        modification,
        modification.target_teacher_id,
        "modification_requested",
        "Reschedule Request",
        f"A student asked to move a session to {new_date.isoformat()} at {new_start.strftime('%H:%M')}.",
    )
    return modification


def request_rebook(
    db: Session,
    actor: User,
    booking_id: int,
    new_teacher_id: int,
    new_date: date,
    new_start: time,
    new_end: time,
    new_subject_id: Optional[int] = None,
    reason: Optional[str] = None,
    is_urgent: bool = False,
) -> BookingModification:
    booking = get_booking(db, booking_id)
    _ensure_requester(db, booking, actor)
    duration = _validate_request(db, booking, new_date, new_start, new_end)

    new_teacher = db.get(User, new_teacher_id)
    if new_teacher is None or new_teacher.role != ROLE_TEACHER:
        raise NotFoundError("Teacher not found.")
    ensure_not_on_holiday(db, new_teacher_id)
    profile = db.query(TeacherProfile).filter(TeacherProfile.user_id == new_teacher_id).first()
    if profile is None:
        raise ValidationError("The selected teacher has not set up their rates yet.")
    if new_subject_id is not None:
        subject = db.get(Subject, new_subject_id)
        if subject is None or subject.teacher_profile_id != profile.id or not subject.is_active:
            raise ValidationError(
                "Invalid subject.", errors={"new_subject_id": ["The subject is not offered by the selected teacher."]}
            )
    if has_conflict(db, new_teacher_id, new_date, new_start, new_end):
        raise StateConflictError("The teacher already has a session at the requested time.")

    modification = _new_modification(booking, actor, TYPE_REBOOK, new_date, new_start, new_end, duration, reason, is_urgent)
    modification.new_teacher_id = new_teacher_id
    modification.new_subject_id = new_subject_id
    modification.price_difference = rebook_price_difference(booking, profile, duration)
    with unit_of_work(db, "create rebook request"):
        db.add(modification)
        db.flush()
    db.refresh(modification)
    logger.info(
        "Rebook request %s created for booking %s by user %s (new teacher %s)", modification.id, booking.id, actor.id, new_teacher_id
    )
    BookingNotifier(db).modification_event(
        modification,
        new_teacher_id,
        "modification_requested",
        "Rebook Request",
        f"A student would like to book a session with you on {new_date.isoformat()} at {new_start.strftime('%H:%M')}.",
    )
    return modification


def _move(db: Session, modification: BookingModification, allowed: Sequence[str], values: Dict[Any, Any], verb: str) -> None:
    if modification.status not in allowed:
        raise StateConflictError(f"This request cannot be {verb} in its current status.")
    updated = (
        db.query(BookingModification)
        .filter(BookingModification.id == modification.id, BookingModification.status.in_(list(allowed)))
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        raise StateConflictError(f"This request cannot be {verb} in its current status.")


def _is_overdue(modification: BookingModification, now: datetime) -> bool:
    expires_at = as_utc(modification.expires_at)
    return expires_at is not None and expires_at < now


def _mark_expired(db: Session, modification: BookingModification) -> None:
    with unit_of_work(db, "expire modification request"):
        _move(db, modification, [MOD_PENDING], {BookingModification.status: MOD_EXPIRED}, "expired")
        _append_history(modification, _history_entry("expired", MOD_EXPIRED, None))
    db.refresh(modification)
    BookingNotifier(db).modification_event(
        modification,
        modification.student_id,
        "modification_expired",
        "Request Expired",
        f"Your {modification.formatted_type.lower()} was not answered in time and has expired.",
    )


def _apply_rebook(db: Session, modification: BookingModification, teacher: User, rate_locker: RateLocker) -> Booking:
    original = modification.booking
    previous_status = original.status
    transition_status(
        db,
        original,
        LIVE_STATUSES,
        {
            Booking.status: STATUS_CANCELLED,
            Booking.cancelled_by_id: teacher.id,
            Booking.cancelled_at: utc_now(),
            Booking.cancellation_reason: "Rebooked with another teacher.",
        },
        "rebooked",
    )
    (
        db.query(TeachingSession)
        .filter(TeachingSession.booking_id == original.id)
        .update({TeachingSession.status: SESSION_CANCELLED}, synchronize_session=False)
    )

    rate = rate_locker.lock(db, teacher.id)
    new_booking = Booking(
        booking_uuid=new_booking_uuid(),
        student_id=original.student_id,
        teacher_id=teacher.id,
        subject_id=modification.new_subject_id,
        booking_date=modification.new_booking_date,
        start_time=modification.new_start_time,
        end_time=modification.new_end_time,
        duration_minutes=modification.new_duration_minutes,
        status=STATUS_CONFIRMED,
        notes=original.notes,
        created_by_id=modification.created_by_id,
        approved_by_id=teacher.id,
        approved_at=utc_now(),
    )
    rate.apply(new_booking)
    db.add(new_booking)
    db.flush()
    ensure_teaching_session(db, new_booking)
    record_history(
        db,
        original,
        "rebooked",
        {"status": previous_status},
        {"status": STATUS_CANCELLED, "new_booking_id": new_booking.id},
        teacher.id,
        modification.reason,
        None,
    )
    return new_booking


def approve_modification(
    db: Session,
    modification_id: int,
    teacher: User,
    rate_locker: RateLocker,
    teacher_notes: Optional[str] = None,
    meta: Optional[RequestMeta] = None,
) -> BookingModification:
    modification = get_modification(db, modification_id)
    if modification.target_teacher_id != teacher.id:
        raise AuthorizationError("Unauthorized access to this request.")
    if modification.status == MOD_PENDING and _is_overdue(modification, utc_now()):
        _mark_expired(db, modification)
        raise StateConflictError("This modification request has expired.")

    now = utc_now()
    with unit_of_work(db, "approve modification request"):
        _move(
            db,
            modification,
            [MOD_PENDING],
            {
                BookingModification.status: MOD_COMPLETED,
                BookingModification.teacher_notes: teacher_notes,
                BookingModification.responded_at: now,
                BookingModification.completed_at: now,
                BookingModification.updated_by_id: teacher.id,
            },
            "approved",
        )
        if modification.type == TYPE_RESCHEDULE:
            booking = modification.booking
            if booking.status not in LIVE_STATUSES:
                raise StateConflictError("This booking can no longer be modified.")
            if has_conflict(
                db,
                booking.teacher_id,
                modification.new_booking_date,
                modification.new_start_time,
                modification.new_end_time,
                exclude_booking_id=booking.id,
            ):
                raise StateConflictError("The teacher already has a session at the requested time.")
            apply_schedule_change(
                db,
                booking,
                teacher.id,
                modification.new_booking_date,
                modification.new_start_time,
                modification.new_end_time,
                modification.reason,
                meta,
            )
        else:
            new_booking = _apply_rebook(db, modification, teacher, rate_locker)
            modification.new_booking_id = new_booking.id
        _append_history(modification, _history_entry("approved", MOD_COMPLETED, teacher.id, teacher_notes))
    db.refresh(modification)
    logger.info("Modification %s (%s) approved by teacher %s", modification.id, modification.type, teacher.id)
    BookingNotifier(db).modification_event(
        modification,
        modification.student_id,
        "modification_approved",
        "Request Approved",
        f"Your {modification.formatted_type.lower()} has been approved.",
    )
    return modification


def reject_modification(db: Session, modification_id: int, teacher: User, teacher_notes: Optional[str] = None) -> BookingModification:
    modification = get_modification(db, modification_id)
    if modification.target_teacher_id != teacher.id:
        raise AuthorizationError("Unauthorized access to this request.")
    with unit_of_work(db, "reject modification request"):
        _move(
            db,
            modification,
            [MOD_PENDING],
            {
                BookingModification.status: MOD_REJECTED,
                BookingModification.teacher_notes: teacher_notes,
                BookingModification.responded_at: utc_now(),
                BookingModification.updated_by_id: teacher.id,
            },
            "rejected",
        )
        _append_history(modification, _history_entry("rejected", MOD_REJECTED, teacher.id, teacher_notes))
    db.refresh(modification)
    logger.info("Modification %s rejected by teacher %s", modification.id, teacher.id)
    BookingNotifier(db).modification_event(
        modification,
        modification.student_id,
        "modification_rejected",
        "Request Declined",
        f"Your {modification.formatted_type.lower()} was declined.",
    )
    return modification


def cancel_modification(db: Session, modification_id: int, actor: User) -> BookingModification:
    modification = get_modification(db, modification_id)
    if actor.id not in (modification.student_id, modification.created_by_id):
        raise AuthorizationError("Unauthorized access to this request.")
    with unit_of_work(db, "cancel modification request"):
        _move(
            db,
            modification,
            OPEN_MODIFICATION_STATUSES,
            {BookingModification.status: MOD_CANCELLED, BookingModification.updated_by_id: actor.id},
            "cancelled",
        )
        _append_history(modification, _history_entry("cancelled", MOD_CANCELLED, actor.id))
    db.refresh(modification)
    logger.info("Modification %s cancelled by user %s", modification.id, actor.id)
    BookingNotifier(db).modification_event(
        modification,
        modification.target_teacher_id,
        "modification_cancelled",
        "Request Withdrawn",
        f"A {modification.formatted_type.lower()} was withdrawn by the student.",
    )
    return modification


def expire_stale_modifications(db: Session, now: Optional[datetime] = None) -> int:
    """Mark overdue pending requests expired. Returns how many were expired."""
    now = now or utc_now()
    pending = (
        db.query(BookingModification)
        .filter(BookingModification.status == MOD_PENDING, BookingModification.expires_at.isnot(None))
        .all()
    )
    expired = 0
    for modification in pending:
        if not _is_overdue(modification, now):
            continue
        try:
            _mark_expired(db, modification)
        except StateConflictError:
            # Answered between the read and the update.
            continue
        expired += 1
    if expired:
        logger.info("Expired %d stale modification requests", expired)
    return expired


def list_student_modifications(db: Session, user: User) -> List[BookingModification]:
    return (
        db.query(BookingModification)
        .filter(or_(BookingModification.student_id == user.id, BookingModification.created_by_id == user.id))
        .order_by(BookingModification.requested_at.desc(), BookingModification.id.desc())
        .all()
    )


def list_teacher_modifications(db: Session, teacher: User, status: Optional[str] = None) -> List[BookingModification]:
    query = db.query(BookingModification).filter(
        or_(
            (BookingModification.type == TYPE_RESCHEDULE) & (BookingModification.teacher_id == teacher.id),
            (BookingModification.type == TYPE_REBOOK) & (BookingModification.new_teacher_id == teacher.id),
        )
    )
    if status:
        query = query.filter(BookingModification.status == status)
    return query.order_by(BookingModification.requested_at.desc(), BookingModification.id.desc()).all()
