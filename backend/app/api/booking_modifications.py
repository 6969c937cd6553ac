"""Reschedule and rebook requests."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_teacher, get_current_user, get_rate_locker, get_request_meta
from backend.app.models.user import User
from backend.app.schemas.booking_modification import (
    BookingModificationRead,
    ModificationResponse,
    RebookModificationCreate,
    RescheduleModificationCreate,
)
from backend.app.services import booking_modifications as modification_service
from backend.app.services.bookings import RequestMeta
from backend.app.services.rate_lock import RateLocker

router = APIRouter(tags=["booking-modifications"])


def _read(modification) -> BookingModificationRead:
    return BookingModificationRead.model_validate(modification)


@router.post("/student/booking-modifications/reschedule", status_code=status.HTTP_201_CREATED)
def request_reschedule(
    payload: RescheduleModificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    modification = modification_service.request_reschedule(
        db,
        current_user,
        payload.booking_id,
        payload.new_date,
        payload.new_start_time,
        payload.new_end_time,
        reason=payload.reason,
        is_urgent=payload.is_urgent,
    )
    return ok("Reschedule request sent to the teacher.", _read(modification))


@router.post("/student/booking-modifications/rebook", status_code=status.HTTP_201_CREATED)
def request_rebook(
    payload: RebookModificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    modification = modification_service.request_rebook(
        db,
        current_user,
        payload.booking_id,
        payload.new_teacher_id,
        payload.new_date,
        payload.new_start_time,
        payload.new_end_time,
        new_subject_id=payload.new_subject_id,
        reason=payload.reason,
        is_urgent=payload.is_urgent,
    )
    return ok("Rebook request sent to the teacher.", _read(modification))


@router.patch("/student/booking-modifications/{modification_id}/cancel")
def cancel_request(modification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    modification = modification_service.cancel_modification(db, modification_id, current_user)
    return ok("Modification request cancelled.", _read(modification))


@router.get("/student/booking-modifications")
def list_student_requests(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rows = modification_service.list_student_modifications(db, current_user)
    return ok("Modification requests retrieved successfully.", [_read(row) for row in rows])


@router.get("/teacher/booking-modifications")
def list_teacher_requests(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
):
    modification_service.expire_stale_modifications(db)
    rows = modification_service.list_teacher_modifications(db, current_user, status_filter)
    return ok("Modification requests retrieved successfully.", [_read(row) for row in rows])


@router.patch("/teacher/booking-modifications/{modification_id}/approve")
def approve_request(
    modification_id: int,
    payload: ModificationResponse,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
    rate_locker: RateLocker = Depends(get_rate_locker),
    meta: RequestMeta = Depends(get_request_meta),
):
    modification = modification_service.approve_modification(
        db, modification_id, current_user, rate_locker, teacher_notes=payload.teacher_notes, meta=meta
    )
    return ok("Modification request approved.", _read(modification))


@router.patch("/teacher/booking-modifications/{modification_id}/reject")
def reject_request(
    modification_id: int,
    payload: ModificationResponse,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
):
    modification = modification_service.reject_modification(db, modification_id, current_user, payload.teacher_notes)
    return ok("Modification request rejected.", _read(modification))
