"""Availability store and slot resolution.

Availability is stored one row per recurring weekly window
(``day_of_week``, ``start_time``, ``end_time``). The legacy ``day_schedules``
blob (``[{day, enabled, fromTime, toTime}]``) is converted to rows when it is
written and projected back only for display.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from backend.app.core.exceptions import StateConflictError, TeacherUnavailableError, ValidationError
from backend.app.core.time import minutes_between, sunday_based_weekday, utc_today
from backend.app.models.availability import AvailabilityPreference, TeacherAvailability
from backend.app.models.booking import LIVE_STATUSES, Booking

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
HOLIDAY_MESSAGE = "This teacher is currently on holiday and not accepting new bookings."


@dataclass(frozen=True)
class Window:
    day_of_week: int
    start_time: time
    end_time: time


@dataclass(frozen=True)
class Slot:
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    availability_id: int


def parse_clock(value: str | time) -> time:
    if isinstance(value, time):
        return value
    text = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError("Invalid time value.", errors={"time": [f"'{value}' is not a valid HH:MM time."]})


def _day_index(day_name: str) -> int:
    normalized = day_name.strip().lower()
    for index, name in enumerate(DAY_NAMES):
        if name.lower() == normalized or name[:3].lower() == normalized:
            return index
    raise ValidationError("Unknown day name.", errors={"day": [f"'{day_name}' is not a day of the week."]})


def day_schedules_to_windows(day_schedules: Iterable[dict]) -> List[Window]:
    """Convert the legacy day schedule blob into normalised windows.

    Disabled days and days without both times are dropped. Order follows the input.
    """
    windows: List[Window] = []
    for entry in day_schedules:
        if not entry.get("enabled"):
            continue
        from_time = entry.get("fromTime") or entry.get("from")
        to_time = entry.get("toTime") or entry.get("to")
        if not from_time or not to_time:
            continue
        windows.append(Window(_day_index(entry.get("day", "")), parse_clock(from_time), parse_clock(to_time)))
    return windows


def windows_to_day_schedules(windows: Sequence[TeacherAvailability | Window]) -> List[dict]:
    """Project windows back into the seven-day shape older clients render.

    A day with several windows shows its earliest start and latest end.
    """
    schedules = []
    for index in (1, 2, 3, 4, 5, 6, 0):
        day_windows = [w for w in windows if w.day_of_week == index]
        if day_windows:
            start = min(w.start_time for w in day_windows)
            end = max(w.end_time for w in day_windows)
            schedules.append(
                {"day": DAY_NAMES[index], "enabled": True, "fromTime": start.strftime("%H:%M"), "toTime": end.strftime("%H:%M")}
            )
        else:
            schedules.append({"day": DAY_NAMES[index], "enabled": False, "fromTime": "", "toTime": ""})
    return schedules


def _validate_windows(windows: Sequence[Window]) -> None:
    errors = {}
    for position, window in enumerate(windows):
        if not 0 <= window.day_of_week <= 6:
            errors[f"windows.{position}.day_of_week"] = ["Day of week must be between 0 (Sunday) and 6 (Saturday)."]
        if window.end_time <= window.start_time:
            errors[f"windows.{position}.end_time"] = ["End time must be after start time."]
    if errors:
        raise ValidationError("Invalid availability windows.", errors=errors)


def get_or_create_preference(db: Session, teacher_id: int) -> AvailabilityPreference:
    preference = db.query(AvailabilityPreference).filter(AvailabilityPreference.teacher_id == teacher_id).first()
    if preference:
        return preference
    preference = AvailabilityPreference(teacher_id=teacher_id, holiday_mode=False)
    db.add(preference)
    db.flush()
    return preference


def is_on_holiday(db: Session, teacher_id: int) -> bool:
    preference = db.query(AvailabilityPreference).filter(AvailabilityPreference.teacher_id == teacher_id).first()
    return bool(preference and preference.holiday_mode)


def ensure_not_on_holiday(db: Session, teacher_id: int) -> None:
    if is_on_holiday(db, teacher_id):
        logger.info("Rejected booking request for teacher %s: holiday mode", teacher_id)
        raise TeacherUnavailableError(HOLIDAY_MESSAGE)


def list_windows(db: Session, teacher_id: int, active_only: bool = True) -> List[TeacherAvailability]:
    query = db.query(TeacherAvailability).filter(TeacherAvailability.teacher_id == teacher_id)
    if active_only:
        query = query.filter(TeacherAvailability.is_active.is_(True))
    return query.order_by(TeacherAvailability.day_of_week, TeacherAvailability.start_time, TeacherAvailability.id).all()


def replace_windows(db: Session, teacher_id: int, windows: Sequence[Window], time_zone: Optional[str] = None) -> List[TeacherAvailability]:
    """Deactivate the teacher's current windows and store the submitted ones.

    Old rows are kept inactive so bookings that reference them stay readable.
    """
    _validate_windows(windows)
    preference = get_or_create_preference(db, teacher_id)
    if time_zone:
        preference.time_zone = time_zone
    (
        db.query(TeacherAvailability)
        .filter(TeacherAvailability.teacher_id == teacher_id, TeacherAvailability.is_active.is_(True))
        .update({TeacherAvailability.is_active: False}, synchronize_session=False)
    )
    rows = []
    for window in windows:
        row = TeacherAvailability(
            teacher_id=teacher_id,
            day_of_week=window.day_of_week,
            start_time=window.start_time,
            end_time=window.end_time,
            is_active=True,
            time_zone=preference.time_zone,
        )
        db.add(row)
        rows.append(row)
    db.flush()
    logger.info("Stored %d availability windows for teacher %s", len(rows), teacher_id)
    return rows


def set_holiday_mode(db: Session, teacher_id: int, holiday_mode: bool) -> AvailabilityPreference:
    preference = get_or_create_preference(db, teacher_id)
    preference.holiday_mode = holiday_mode
    db.flush()
    return preference


def _booked_starts(db: Session, teacher_id: int, dates: Sequence[date]) -> set[tuple[date, time]]:
    rows = (
        db.query(Booking.booking_date, Booking.start_time)
        .filter(
            Booking.teacher_id == teacher_id,
            Booking.booking_date.in_(list(dates)),
            Booking.status.in_(LIVE_STATUSES),
        )
        .all()
    )
    return {(row.booking_date, row.start_time) for row in rows}


def open_windows_for_date(db: Session, teacher_id: int, on_date: date) -> List[TeacherAvailability]:
    """Active windows on the date's weekday that no live booking holds yet."""
    weekday = sunday_based_weekday(on_date)
    booked = _booked_starts(db, teacher_id, [on_date])
    return [
        window
        for window in list_windows(db, teacher_id)
        if window.day_of_week == weekday and (on_date, window.start_time) not in booked
    ]


def resolve_slots(db: Session, teacher_id: int, dates: Sequence[date], availability_ids: Sequence[int]) -> List[Slot]:
    """Turn candidate dates plus chosen availability windows into bookable slots.

    A window only produces a slot on dates that fall on its weekday. Duplicate or
    overlapping windows each produce their own slot. Slots a live booking already
    holds are dropped; if that leaves nothing the request is a conflict.
    """
    if not dates or not availability_ids:
        errors = {}
        if not dates:
            errors["dates"] = ["Select at least one date."]
        if not availability_ids:
            errors["availability_ids"] = ["Select at least one time slot."]
        raise ValidationError("Please select at least one date and time slot.", errors=errors)

    today = utc_today()
    past = [booking_date for booking_date in dates if booking_date < today]
    if past:
        raise ValidationError(
            "Lessons cannot be booked on past dates.",
            errors={"dates": [f"{booking_date.isoformat()} is in the past." for booking_date in past]},
        )

    ensure_not_on_holiday(db, teacher_id)

    requested_ids = list(dict.fromkeys(availability_ids))
    windows = (
        db.query(TeacherAvailability)
        .filter(
            TeacherAvailability.id.in_(requested_ids),
            TeacherAvailability.teacher_id == teacher_id,
            TeacherAvailability.is_active.is_(True),
        )
        .all()
    )
    by_id = {window.id: window for window in windows}
    missing = [availability_id for availability_id in requested_ids if availability_id not in by_id]
    if missing:
        raise ValidationError(
            "Some selected time slots are not available for this teacher.",
            errors={"availability_ids": [f"Availability {availability_id} is not an active window of this teacher." for availability_id in missing]},
        )

    booked = _booked_starts(db, teacher_id, dates)
    slots: List[Slot] = []
    for booking_date in dates:
        weekday = sunday_based_weekday(booking_date)
        for availability_id in requested_ids:
            window = by_id[availability_id]
            if window.day_of_week != weekday:
                continue
            if (booking_date, window.start_time) in booked:
                logger.info("Skipping booked slot %s %s for teacher %s", booking_date, window.start_time, teacher_id)
                continue
            slots.append(
                Slot(
                    booking_date=booking_date,
                    start_time=window.start_time,
                    end_time=window.end_time,
                    duration_minutes=minutes_between(window.start_time, window.end_time),
                    availability_id=window.id,
                )
            )

    if not slots:
        raise StateConflictError("None of the selected dates match an open slot of this teacher.")
    return slots
