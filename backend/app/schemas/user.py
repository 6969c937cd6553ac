"""User schemas used for registration and responses."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None
    role: Literal["teacher", "student", "guardian"] = "student"
    # Only meaningful for guardians who also take lessons.
    is_learner: bool = False


class UserRead(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str] = None
    role: str
    is_learner: bool

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    id: int
    name: Optional[str] = None
    email: EmailStr
    avatar_url: Optional[str] = None
    last_active_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChildCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    password: Optional[str] = None
    is_primary: bool = True
