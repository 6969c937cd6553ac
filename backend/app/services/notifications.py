"""Booking notifications.

Notifications are written after the booking change has been committed. A
failure here is logged and rolled back on its own; it never reaches the caller.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from backend.app.models.booking import Booking
from backend.app.models.booking_modification import BookingModification
from backend.app.models.notification import Notification
from backend.app.models.user import User

logger = logging.getLogger(__name__)


def _fmt_date(value) -> str | None:
    return value.isoformat() if value is not None else None


def _fmt_time(value) -> str | None:
    return value.strftime("%H:%M") if value is not None else None


class BookingNotifier:
    def __init__(self, db: Session):
        self.db = db

    def _create(
        self,
        user_id: int,
        type_: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        booking_id: Optional[int] = None,
        modification_id: Optional[int] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            booking_id=booking_id,
            modification_id=modification_id,
            type=type_,
            title=title,
            body=body,
            data=data or {},
        )
        self.db.add(notification)
        return notification

    def _dispatch(self, event: str, build) -> None:
        try:
            build()
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to send %s notifications", event)

    def _names(self, booking: Booking) -> Dict[str, str]:
        student = self.db.get(User, booking.student_id)
        teacher = self.db.get(User, booking.teacher_id)
        return {
            "student_name": student.display_name if student else "Student",
            "teacher_name": teacher.display_name if teacher else "Teacher",
            "subject_name": booking.subject_name or "lesson",
        }

    def _booking_data(self, booking: Booking, names: Dict[str, str]) -> Dict[str, Any]:
        return {
            **names,
            "booking_uuid": booking.booking_uuid,
            "booking_date": _fmt_date(booking.booking_date),
            "start_time": _fmt_time(booking.start_time),
            "end_time": _fmt_time(booking.end_time),
        }

    def booking_created(self, booking: Booking) -> None:
        def build():
            names = self._names(booking)
            data = self._booking_data(booking, names)
            self._create(
                booking.teacher_id,
                "booking_created",
                "New Booking Request",
                f"{names['student_name']} requested a {names['subject_name']} session on {data['booking_date']} at {data['start_time']}.",
                data,
                booking_id=booking.id,
            )
            self._create(
                booking.student_id,
                "booking_created",
                "Booking Request Sent",
                f"Your {names['subject_name']} session request with {names['teacher_name']} is awaiting approval.",
                data,
                booking_id=booking.id,
            )
            if booking.created_by_id and booking.created_by_id != booking.student_id:
                self._create(
                    booking.created_by_id,
                    "booking_created",
                    "Booking Request Sent",
                    f"The {names['subject_name']} session for {names['student_name']} is awaiting approval.",
                    data,
                    booking_id=booking.id,
                )

        self._dispatch("booking_created", build)

    def booking_approved(self, booking: Booking) -> None:
        def build():
            names = self._names(booking)
            data = self._booking_data(booking, names)
            self._create(
                booking.student_id,
                "booking_approved",
                "Booking Approved",
                f"{names['teacher_name']} approved your {names['subject_name']} session on {data['booking_date']}.",
                data,
                booking_id=booking.id,
            )
            self._create(
                booking.teacher_id,
                "booking_approved",
                "Booking Approved",
                f"You approved the {names['subject_name']} session with {names['student_name']}.",
                data,
                booking_id=booking.id,
            )

        self._dispatch("booking_approved", build)

    def booking_rejected(self, booking: Booking, reason: Optional[str]) -> None:
        def build():
            names = self._names(booking)
            data = {**self._booking_data(booking, names), "reason": reason}
            self._create(
                booking.student_id,
                "booking_rejected",
                "Booking Declined",
                f"{names['teacher_name']} could not accept your {names['subject_name']} session request.",
                data,
                booking_id=booking.id,
            )
            self._create(
                booking.teacher_id,
                "booking_rejected",
                "Booking Declined",
                f"You declined the {names['subject_name']} session request from {names['student_name']}.",
                data,
                booking_id=booking.id,
            )

        self._dispatch("booking_rejected", build)

    def booking_rescheduled(self, booking: Booking, old_data: Dict[str, Any], new_data: Dict[str, Any]) -> None:
        def build():
            names = self._names(booking)
            data = {
                **names,
                "old_date": old_data.get("booking_date"),
                "old_time": old_data.get("start_time"),
                "new_date": new_data.get("booking_date"),
                "new_time": new_data.get("start_time"),
            }
            self._create(
                booking.student_id,
                "rescheduled",
                "Session Rescheduled",
                f"Your {names['subject_name']} session with {names['teacher_name']} has been rescheduled.",
                data,
                booking_id=booking.id,
            )
            self._create(
                booking.teacher_id,
                "rescheduled",
                "Session Rescheduled",
                f"You have rescheduled your {names['subject_name']} session with {names['student_name']}.",
                data,
                booking_id=booking.id,
            )

        self._dispatch("booking_rescheduled", build)

    def booking_cancelled(self, booking: Booking, reason: Optional[str]) -> None:
        def build():
            names = self._names(booking)
            data = {**self._booking_data(booking, names), "reason": reason}
            self._create(
                booking.student_id,
                "cancelled",
                "Session Cancelled",
                f"Your {names['subject_name']} session with {names['teacher_name']} has been cancelled.",
                data,
                booking_id=booking.id,
            )
            self._create(
                booking.teacher_id,
                "cancelled",
                "Session Cancelled",
                f"The {names['subject_name']} session with {names['student_name']} has been cancelled.",
                data,
                booking_id=booking.id,
            )

        self._dispatch("booking_cancelled", build)

    def booking_completed(self, booking: Booking) -> None:
        def build():
            names = self._names(booking)
            self._create(
                booking.student_id,
                "booking_completed",
                "Session Completed",
                f"Your {names['subject_name']} session with {names['teacher_name']} is complete.",
                self._booking_data(booking, names),
                booking_id=booking.id,
            )

        self._dispatch("booking_completed", build)

    def modification_event(self, modification: BookingModification, recipient_id: int, type_: str, title: str, body: str) -> None:
        def build():
            self._create(
                recipient_id,
                type_,
                title,
                body,
                {"modification_uuid": modification.modification_uuid, "type": modification.type, "status": modification.status},
                booking_id=modification.booking_id,
                modification_id=modification.id,
            )

        self._dispatch(type_, build)
