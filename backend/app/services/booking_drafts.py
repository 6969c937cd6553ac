"""Versioned drafts for the multi-step booking form.

Each save must name the version it was based on; a stale version is rejected
instead of silently overwriting a newer save.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from backend.app.core.exceptions import NotFoundError, ValidationError, VersionConflictError
from backend.app.core.time import utc_now
from backend.app.models.booking_draft import BookingDraft
from backend.app.models.user import User
from backend.app.services.bookings import unit_of_work

logger = logging.getLogger(__name__)

DRAFT_FIELDS = ("teacher_id", "student_id", "dates", "availability_ids", "subjects", "note")


def _to_storage(field: str, value: Any) -> Any:
    if field == "dates" and value is not None:
        return [item.isoformat() if isinstance(item, date) else str(item) for item in value]
    if field in ("availability_ids", "subjects") and value is not None:
        return list(value)
    return value


def draft_dates(draft: BookingDraft) -> List[date]:
    try:
        return [date.fromisoformat(item) for item in draft.dates or []]
    except ValueError as exc:
        raise ValidationError("The draft contains an invalid date.", errors={"dates": [str(exc)]}) from exc


def create_draft(db: Session, owner: User, **fields: Any) -> BookingDraft:
    draft = BookingDraft(draft_uuid=uuid.uuid4().hex, owner_id=owner.id, version=1, dates=[], availability_ids=[], subjects=[])
    for field in DRAFT_FIELDS:
        if fields.get(field) is not None:
            setattr(draft, field, _to_storage(field, fields[field]))
    with unit_of_work(db, "create booking draft"):
        db.add(draft)
    db.refresh(draft)
    logger.info("Booking draft %s created by user %s", draft.draft_uuid, owner.id)
    return draft


def get_draft(db: Session, draft_uuid: str, owner: User) -> BookingDraft:
    draft = db.query(BookingDraft).filter(BookingDraft.draft_uuid == draft_uuid).first()
    if draft is None or draft.owner_id != owner.id:
        raise NotFoundError("Booking draft not found.")
    return draft


def update_draft(db: Session, draft_uuid: str, owner: User, version: int, changes: Dict[str, Any]) -> BookingDraft:
    """Apply ``changes`` only if the stored version still equals ``version``."""
    draft = get_draft(db, draft_uuid, owner)
    values: Dict[Any, Any] = {
        getattr(BookingDraft, field): _to_storage(field, value) for field, value in changes.items() if field in DRAFT_FIELDS
    }
    values[BookingDraft.version] = version + 1
    values[BookingDraft.updated_at] = utc_now()
    with unit_of_work(db, "update booking draft"):
        updated = (
            db.query(BookingDraft)
            .filter(BookingDraft.id == draft.id, BookingDraft.version == version)
            .update(values, synchronize_session=False)
        )
        if updated == 0:
            raise VersionConflictError(
                "This draft was changed elsewhere. Reload it and try again.",
                errors={"version": [f"Current version is {draft.version}."]},
            )
    db.refresh(draft)
    return draft


def discard_draft(db: Session, draft: BookingDraft) -> None:
    with unit_of_work(db, "discard booking draft"):
        db.delete(draft)
    logger.info("Booking draft %s consumed", draft.draft_uuid)


def merge_with_draft(draft: Optional[BookingDraft], explicit: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    """Explicit request values win; missing ones come from the draft."""
    merged = dict(explicit)
    if draft is None:
        return merged
    for field in fields:
        if merged.get(field) in (None, [], ""):
            if field == "dates":
                merged[field] = draft_dates(draft)
            else:
                merged[field] = getattr(draft, field)
    return merged
