"""Request dependencies: role guards, request metadata and service wiring."""

from fastapi import Depends, HTTPException, Request, status

from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import ROLE_GUARDIAN, ROLE_TEACHER, User
from backend.app.services.bookings import RequestMeta
from backend.app.services.currency import get_currency_service
from backend.app.services.rate_lock import RateLocker

__all__ = [
    "get_current_guardian",
    "get_current_learner",
    "get_current_teacher",
    "get_current_user",
    "get_db",
    "get_rate_locker",
    "get_request_meta",
]


def get_current_teacher(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_TEACHER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teacher access required")
    return current_user


def get_current_guardian(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_GUARDIAN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Guardian access required")
    return current_user


def get_current_learner(current_user: User = Depends(get_current_user)) -> User:
    """Students, and guardians who take lessons themselves."""
    if not current_user.can_take_lessons:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student access required")
    return current_user


def get_request_meta(request: Request) -> RequestMeta:
    return RequestMeta(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_rate_locker() -> RateLocker:
    return RateLocker(get_currency_service())
