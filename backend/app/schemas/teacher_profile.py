from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TeacherProfileUpdate(BaseModel):
    hourly_rate_ngn: Optional[Decimal] = Field(default=None, ge=0)
    hourly_rate_usd: Optional[Decimal] = Field(default=None, ge=0)
    preferred_currency: Optional[Literal["NGN", "USD"]] = None
    specializations: Optional[List[str]] = None
    experience_years: Optional[int] = Field(default=None, ge=0)
    subjects: Optional[List[str]] = None


class SubjectRead(BaseModel):
    id: int
    name: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class TeacherProfileRead(BaseModel):
    id: int
    user_id: int
    hourly_rate_ngn: Decimal
    hourly_rate_usd: Decimal
    preferred_currency: str
    specialization_list: List[str]
    experience_years: Optional[int] = None
    verification_status: str
    subjects: List[SubjectRead]

    model_config = ConfigDict(from_attributes=True)
