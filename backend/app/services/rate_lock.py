"""Freezes a teacher's current pricing onto new bookings."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app.core.exceptions import ValidationError
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.models.booking import Booking
from backend.app.models.teacher_profile import CURRENCY_NGN, TeacherProfile
from backend.app.services.currency import CurrencyService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLock:
    hourly_rate_ngn: Decimal
    hourly_rate_usd: Decimal
    rate_currency: str
    exchange_rate_used: Decimal
    rate_locked_at: datetime

    def apply(self, booking: Booking) -> None:
        booking.hourly_rate_ngn = self.hourly_rate_ngn
        booking.hourly_rate_usd = self.hourly_rate_usd
        booking.rate_currency = self.rate_currency
        booking.exchange_rate_used = self.exchange_rate_used
        booking.rate_locked_at = self.rate_locked_at


class RateLocker:
    def __init__(self, currency_service: CurrencyService):
        self.currency_service = currency_service

    def lock(self, db: Session, teacher_id: int) -> RateLock:
        """Read the teacher's rates and the NGN->USD rate once.

        One lock is shared by every booking created in the same request.
        """
        profile = db.query(TeacherProfile).filter(TeacherProfile.user_id == teacher_id).first()
        exchange_rate = self.currency_service.get_exchange_rate("NGN", "USD")
        if profile is None:
            if not get_settings().allow_zero_rate_fallback:
                raise ValidationError("This teacher has not set up their rates yet.")
            logger.warning("Teacher %s has no profile; locking zero rates", teacher_id)
            return RateLock(Decimal("0.00"), Decimal("0.00"), CURRENCY_NGN, exchange_rate, utc_now())

        return RateLock(
            hourly_rate_ngn=Decimal(profile.hourly_rate_ngn or 0),
            hourly_rate_usd=Decimal(profile.hourly_rate_usd or 0),
            rate_currency=profile.preferred_currency or CURRENCY_NGN,
            exchange_rate_used=exchange_rate,
            rate_locked_at=utc_now(),
        )
