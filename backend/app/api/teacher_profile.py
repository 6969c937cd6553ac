from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.responses import ok
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_teacher
from backend.app.models.user import User
from backend.app.schemas.teacher_profile import TeacherProfileRead, TeacherProfileUpdate
from backend.app.services import teacher_profiles
from backend.app.services.recommendations import recommended_students

router = APIRouter(prefix="/teacher", tags=["teacher"])


@router.get("/profile")
def get_profile(db: Session = Depends(get_db), current_user: User = Depends(get_current_teacher)):
    profile = teacher_profiles.get_or_create_profile(db, current_user)
    db.commit()
    return ok("Profile retrieved successfully.", TeacherProfileRead.model_validate(profile))


@router.put("/profile")
def update_profile(
    payload: TeacherProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_teacher),
):
    profile = teacher_profiles.update_profile(db, current_user, **payload.model_dump(exclude_unset=True))
    return ok("Profile updated successfully.", TeacherProfileRead.model_validate(profile))


@router.get("/recommended-students")
def get_recommended_students(db: Session = Depends(get_db), current_user: User = Depends(get_current_teacher)):
    return ok("Recommended students retrieved successfully.", {"students": recommended_students(db, current_user)})
