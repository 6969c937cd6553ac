"""Guardian account: linked children."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_guardian
from backend.app.models.user import User
from backend.app.schemas.user import ChildCreate, UserSummary
from backend.app.services.guardians import create_or_get_student_user, get_guardian_children, link_guardian_to_student

router = APIRouter(prefix="/guardian/children", tags=["guardian"])


@router.get("")
def list_children(db: Session = Depends(get_db), current_user: User = Depends(get_current_guardian)):
    children = get_guardian_children(db, current_user)
    return ok("Children retrieved successfully.", [UserSummary.model_validate(child) for child in children])


@router.post("", status_code=status.HTTP_201_CREATED)
def add_child(payload: ChildCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_guardian)):
    child = create_or_get_student_user(db, payload.email, name=payload.name, password=payload.password)
    link_guardian_to_student(db, current_user, child, is_primary=payload.is_primary)
    db.commit()
    db.refresh(child)
    return ok("Child linked successfully.", UserSummary.model_validate(child))
