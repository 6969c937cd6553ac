"""Booking submission and read endpoints for students and guardians."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.core.exceptions import ValidationError
from backend.app.db.session import get_db
from backend.app.dependencies.auth import (
    get_current_guardian,
    get_current_learner,
    get_current_user,
    get_rate_locker,
    get_request_meta,
)
from backend.app.models.booking_draft import BookingDraft
from backend.app.models.user import User
from backend.app.schemas.booking import BookingDetail, BookingRead, BookingSubmission, CancelRequest, GuardianBookingSubmission
from backend.app.services import booking_drafts
from backend.app.services import bookings as booking_service
from backend.app.services.availability import resolve_slots
from backend.app.services.bookings import RequestMeta
from backend.app.services.guardians import resolve_booking_student
from backend.app.services.rate_lock import RateLocker

router = APIRouter(tags=["bookings"])

DRAFT_FIELDS = ("teacher_id", "dates", "availability_ids", "subjects", "note")


def _load_draft(db: Session, actor: User, payload: BookingSubmission) -> Optional[BookingDraft]:
    return booking_drafts.get_draft(db, payload.draft_uuid, actor) if payload.draft_uuid else None


def _submit(
    db: Session,
    actor: User,
    student_id: int,
    payload: BookingSubmission,
    rate_locker: RateLocker,
    draft: Optional[BookingDraft],
):
    values = booking_drafts.merge_with_draft(draft, payload.model_dump(), DRAFT_FIELDS)
    if values.get("teacher_id") is None:
        raise ValidationError("Please select a teacher.", errors={"teacher_id": ["This field is required."]})

    teacher_id = values["teacher_id"]
    slots = resolve_slots(db, teacher_id, values["dates"], values["availability_ids"])
    subject_id = booking_service.subject_for_booking(db, teacher_id, payload.subject_id, values.get("subjects") or [])
    created = booking_service.create_bookings(
        db,
        actor,
        student_id=student_id,
        teacher_id=teacher_id,
        subject_id=subject_id,
        slots=slots,
        notes=values.get("note"),
        rate_locker=rate_locker,
    )
    if draft is not None:
        booking_drafts.discard_draft(db, draft)
    return [BookingRead.model_validate(booking) for booking in created]


@router.post("/guardian/bookings/process-payment", status_code=status.HTTP_201_CREATED)
def guardian_process_payment(
    payload: GuardianBookingSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_guardian),
    rate_locker: RateLocker = Depends(get_rate_locker),
):
    draft = _load_draft(db, current_user, payload)
    child_id = payload.child_id
    if child_id is None and draft is not None:
        child_id = draft.student_id
    student_id = resolve_booking_student(db, current_user, payload.booking_for, child_id)
    created = _submit(db, current_user, student_id, payload, rate_locker, draft)
    return ok("Booking request submitted successfully. The teacher will review it shortly.", {"bookings": created})


@router.get("/guardian/bookings")
def list_guardian_bookings(db: Session = Depends(get_db), current_user: User = Depends(get_current_guardian)):
    rows = booking_service.list_guardian_bookings(db, current_user.id)
    return ok("Bookings retrieved successfully.", [BookingRead.model_validate(row) for row in rows])


@router.post("/student/bookings", status_code=status.HTTP_201_CREATED)
def create_student_booking(
    payload: BookingSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_learner),
    rate_locker: RateLocker = Depends(get_rate_locker),
):
    created = _submit(db, current_user, current_user.id, payload, rate_locker, _load_draft(db, current_user, payload))
    return ok("Booking request submitted successfully. The teacher will review it shortly.", {"bookings": created})


@router.get("/student/bookings")
def list_student_bookings(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_learner),
):
    rows = booking_service.list_student_bookings(db, current_user.id, status_filter)
    return ok("Bookings retrieved successfully.", [BookingRead.model_validate(row) for row in rows])


@router.patch("/student/bookings/{booking_id}/cancel")
def student_cancel_booking(
    booking_id: int,
    payload: CancelRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    meta: RequestMeta = Depends(get_request_meta),
):
    booking = booking_service.cancel_booking(db, booking_id, current_user, payload.reason, meta)
    return ok("Booking cancelled successfully.", BookingRead.model_validate(booking))


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    booking = booking_service.get_booking_for_user(db, booking_id, current_user)
    return ok("Booking retrieved successfully.", BookingDetail.model_validate(booking))
