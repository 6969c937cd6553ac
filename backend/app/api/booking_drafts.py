from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.user import User
from backend.app.schemas.booking_draft import BookingDraftCreate, BookingDraftRead, BookingDraftUpdate
from backend.app.services import booking_drafts

router = APIRouter(prefix="/bookings/drafts", tags=["booking-drafts"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_draft(payload: BookingDraftCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    draft = booking_drafts.create_draft(db, current_user, **payload.model_dump())
    return ok("Draft saved.", BookingDraftRead.model_validate(draft))


@router.get("/{draft_uuid}")
def read_draft(draft_uuid: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    draft = booking_drafts.get_draft(db, draft_uuid, current_user)
    return ok("Draft retrieved.", BookingDraftRead.model_validate(draft))


@router.patch("/{draft_uuid}")
def update_draft(
    draft_uuid: str,
    payload: BookingDraftUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"version"})
    draft = booking_drafts.update_draft(db, draft_uuid, current_user, payload.version, changes)
    return ok("Draft saved.", BookingDraftRead.model_validate(draft))
