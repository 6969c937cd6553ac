"""Teacher availability: weekly windows and holiday mode."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_teacher
from backend.app.models.availability import AvailabilityPreference
from backend.app.models.user import ROLE_TEACHER, User
from backend.app.schemas.availability import AvailabilityRead, AvailabilityUpdate, AvailabilityWindowRead
from backend.app.services import availability as availability_service

router = APIRouter(tags=["availability"])


def _get_teacher(db: Session, teacher_id: int) -> User:
    teacher = db.get(User, teacher_id)
    if teacher is None or teacher.role != ROLE_TEACHER:
        raise NotFoundError("Teacher not found.")
    return teacher


def _availability_read(db: Session, teacher_id: int) -> AvailabilityRead:
    windows = availability_service.list_windows(db, teacher_id)
    preference = db.query(AvailabilityPreference).filter(AvailabilityPreference.teacher_id == teacher_id).first()
    return AvailabilityRead(
        teacher_id=teacher_id,
        holiday_mode=bool(preference and preference.holiday_mode),
        time_zone=preference.time_zone if preference else "Africa/Lagos",
        windows=[AvailabilityWindowRead.model_validate(window) for window in windows],
        day_schedules=availability_service.windows_to_day_schedules(windows),
    )


@router.get("/teacher/availability/{teacher_id}")
def get_availability(teacher_id: int, db: Session = Depends(get_db)):
    _get_teacher(db, teacher_id)
    return ok("Availability retrieved successfully.", _availability_read(db, teacher_id))


@router.post("/teacher/availability/{teacher_id}")
def update_availability(
    teacher_id: int,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
):
    if current_user.id != teacher_id:
        raise AuthorizationError("You can only update your own availability.")
    if payload.windows is not None and payload.day_schedules is not None:
        raise ValidationError(
            "Send either windows or day_schedules, not both.",
            errors={"windows": ["Cannot be combined with day_schedules."]},
        )

    if payload.windows is not None:
        windows = [availability_service.Window(w.day_of_week, w.start_time, w.end_time) for w in payload.windows]
        availability_service.replace_windows(db, teacher_id, windows, payload.time_zone)
    elif payload.day_schedules is not None:
        windows = availability_service.day_schedules_to_windows(item.model_dump() for item in payload.day_schedules)
        availability_service.replace_windows(db, teacher_id, windows, payload.time_zone)
    elif payload.time_zone:
        availability_service.get_or_create_preference(db, teacher_id).time_zone = payload.time_zone

    if payload.holiday_mode is not None:
        availability_service.set_holiday_mode(db, teacher_id, payload.holiday_mode)
    db.commit()
    return ok("Availability updated successfully.", _availability_read(db, teacher_id))


@router.get("/teachers/{teacher_id}/availability")
def get_open_windows(teacher_id: int, on_date: date = Query(alias="date"), db: Session = Depends(get_db)):
    _get_teacher(db, teacher_id)
    on_holiday = availability_service.is_on_holiday(db, teacher_id)
    windows = [] if on_holiday else availability_service.open_windows_for_date(db, teacher_id, on_date)
    return ok(
        "Available time slots retrieved successfully.",
        {
            "date": on_date,
            "holiday_mode": on_holiday,
            "windows": [AvailabilityWindowRead.model_validate(window) for window in windows],
        },
    )
