"""Teacher actions on bookings: approve, reject, reschedule, cancel, complete."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_teacher, get_request_meta
from backend.app.models.user import User
from backend.app.schemas.booking import BookingRead, CancelRequest, RejectRequest, RescheduleRequest
from backend.app.services import bookings as booking_service
from backend.app.services.bookings import RequestMeta

router = APIRouter(prefix="/teacher/bookings", tags=["teacher-bookings"])


@router.get("")
def list_bookings(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
):
    rows = booking_service.list_teacher_bookings(db, current_user.id, status_filter)
    return ok("Bookings retrieved successfully.", [BookingRead.model_validate(row) for row in rows])


@router.patch("/{booking_id}/approve")
def approve_booking(booking_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_teacher)):
    booking = booking_service.approve_booking(db, booking_id, current_user)
    return ok("Booking approved successfully.", BookingRead.model_validate(booking))


@router.patch("/{booking_id}/reject")
def reject_booking(
    booking_id: int,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
):
    booking = booking_service.reject_booking(db, booking_id, current_user, payload.reason)
    return ok("Booking rejected successfully.", BookingRead.model_validate(booking))


@router.patch("/{booking_id}/reschedule")
def reschedule_booking(
    booking_id: int,
    payload: RescheduleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
    meta: RequestMeta = Depends(get_request_meta),
):
    booking = booking_service.reschedule_booking(
        db,
        booking_id,
        current_user,
        payload.new_date,
        payload.new_start_time,
        payload.new_end_time,
        payload.reason,
        meta,
    )
    return ok("Booking rescheduled successfully.", BookingRead.model_validate(booking))


@router.patch("/{booking_id}/cancel")
def cancel_booking(
    booking_id: int,
    payload: CancelRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
    meta: RequestMeta = Depends(get_request_meta),
):
    booking = booking_service.cancel_booking(db, booking_id, current_user, payload.reason, meta)
    return ok("Booking cancelled successfully.", BookingRead.model_validate(booking))


@router.patch("/{booking_id}/complete")
def complete_booking(booking_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_teacher)):
    booking = booking_service.complete_booking(db, booking_id, current_user)
    return ok("Booking marked as completed.", BookingRead.model_validate(booking))
