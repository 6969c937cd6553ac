"""Ranks pending lesson requests for a teacher.

``score_request`` and ``recommend`` are pure functions over in-memory
``PendingRequest`` values. ``recommended_students`` loads the inputs from the
database and formats the matches for the API.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.models.booking import STATUS_PENDING, Booking
from backend.app.models.teacher_profile import TeacherProfile
from backend.app.models.user import User
from backend.app.services.availability import DAY_NAMES

logger = logging.getLogger(__name__)

SUBJECT_WEIGHT = 40
SPECIALIZATION_WEIGHT = 25
PREFERRED_TIME_SCORE = 15
BASE_TIME_SCORE = 10
# Experience and availability are not differentiated yet; every request gets the same score.
EXPERIENCE_PLACEHOLDER_SCORE = 10
AVAILABILITY_PLACEHOLDER_SCORE = 10

KNOWN_SPECIALIZATIONS = ("Hifz", "Tajweed", "Hadith", "Fiqh", "Arabic", "Quran")

REQUEST_DESCRIPTIONS = {
    "Hifz": "Need help with Quran memorization and revision.",
    "Tajweed": "Looking for assistance with proper Quran recitation.",
    "Hadith": "Seeking guidance on Hadith studies and understanding.",
    "Fiqh": "Need help with Islamic jurisprudence and rulings.",
    "Arabic": "Looking for Arabic language learning support.",
    "Quran": "Seeking help with Quranic studies and understanding.",
}
LEARNING_GOALS = {
    "Hifz": "Complete Hifz in 1 Year",
    "Tajweed": "Master Quran Recitation",
    "Hadith": "Study Major Hadith Collections",
    "Fiqh": "Learn Islamic Jurisprudence",
    "Arabic": "Achieve Arabic Fluency",
    "Quran": "Complete Quran Study",
}


@dataclass(frozen=True)
class PendingRequest:
    booking_id: int
    student_id: int
    subject_name: str
    booking_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    subject_match: int
    specialization_match: int
    time_preference: int
    experience_level: int
    availability: int

    @property
    def total(self) -> int:
        raw = self.subject_match + self.specialization_match + self.time_preference + self.experience_level + self.availability
        return max(0, min(100, raw))

    def as_dict(self) -> Dict[str, int]:
        return {
            "subject_match": self.subject_match,
            "specialization_match": self.specialization_match,
            "time_preference": self.time_preference,
            "experience_level": self.experience_level,
            "availability": self.availability,
            "total": self.total,
        }


@dataclass(frozen=True)
class Recommendation:
    request: PendingRequest
    score: ScoreBreakdown
    match_reasons: List[str] = field(default_factory=list)


def extract_specialization(subject_name: str) -> str:
    lowered = subject_name.lower()
    for specialization in KNOWN_SPECIALIZATIONS:
        if specialization.lower() in lowered:
            return specialization
    return subject_name


def subject_similarity(subject_name: str, teacher_subjects: Sequence[str]) -> int:
    """Partial credit on the 40 point scale from the closest teacher subject."""
    best = 0.0
    for teacher_subject in teacher_subjects:
        ratio = SequenceMatcher(None, subject_name.lower(), teacher_subject.lower()).ratio() * 100
        best = max(best, ratio)
    return int(best * SUBJECT_WEIGHT / 100)


def time_preference_score(start_time: Optional[time]) -> int:
    if start_time is None:
        return BASE_TIME_SCORE
    hour = start_time.hour
    if 6 <= hour < 12 or 18 <= hour < 21:
        return PREFERRED_TIME_SCORE
    return BASE_TIME_SCORE


def score_request(request: PendingRequest, teacher_subjects: Sequence[str], teacher_specializations: Sequence[str]) -> ScoreBreakdown:
    if request.subject_name in teacher_subjects:
        subject_score = SUBJECT_WEIGHT
    else:
        subject_score = subject_similarity(request.subject_name, teacher_subjects)

    specialization_score = 0
    if teacher_specializations and extract_specialization(request.subject_name) in teacher_specializations:
        specialization_score = SPECIALIZATION_WEIGHT

    return ScoreBreakdown(
        subject_match=subject_score,
        specialization_match=specialization_score,
        time_preference=time_preference_score(request.start_time),
        experience_level=EXPERIENCE_PLACEHOLDER_SCORE,
        availability=AVAILABILITY_PLACEHOLDER_SCORE,
    )


def match_reasons(score: ScoreBreakdown) -> List[str]:
    reasons = []
    if score.subject_match >= 30:
        reasons.append("Subject match")
    if score.specialization_match >= 20:
        reasons.append("Specialization match")
    if score.time_preference >= 12:
        reasons.append("Time preference")
    if score.experience_level >= 8:
        reasons.append("Experience level")
    if score.availability >= 8:
        reasons.append("Availability")
    return reasons


def recommend(
    requests: Sequence[PendingRequest],
    teacher_subjects: Sequence[str],
    teacher_specializations: Sequence[str],
    threshold: int = 70,
    limit: int = 10,
) -> List[Recommendation]:
    """Score every request, keep those at or above ``threshold``, best first.

    Ties keep their input order.
    """
    matches = []
    for request in requests:
        score = score_request(request, teacher_subjects, teacher_specializations)
        if score.total >= threshold:
            matches.append(Recommendation(request, score, match_reasons(score)))
    matches.sort(key=lambda match: match.score.total, reverse=True)
    return matches[:limit]


def period_label(start_time: time) -> str:
    hour = start_time.hour
    if 6 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 21:
        return "Evening"
    return "Night"


def _clock(value: time) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def format_time_range(start_time: Optional[time], end_time: Optional[time]) -> str:
    if start_time is None:
        return "Time not specified"
    end = _clock(end_time) if end_time is not None else "Unknown"
    return f"{period_label(start_time)} ({_clock(start_time)} - {end})"


def _lookup(table: Dict[str, str], subject_name: str, default: str) -> str:
    lowered = subject_name.lower()
    for key, value in table.items():
        if key.lower() in lowered:
            return value
    return default


def _format(recommendation: Recommendation, students: Dict[int, User]) -> Dict:
    request = recommendation.request
    student = students.get(request.student_id)
    subject_name = request.subject_name or "Unknown Subject"
    return {
        "id": request.booking_id,
        "student": {
            "id": request.student_id,
            "name": student.display_name if student else None,
            "avatar": student.avatar_url if student else None,
            "specialization": extract_specialization(subject_name),
            "subjects": [subject_name],
            "learning_goal": _lookup(LEARNING_GOALS, subject_name, "Complete Islamic Studies"),
            "available_days": [DAY_NAMES[(request.booking_date.weekday() + 1) % 7]] if request.booking_date else [],
        },
        "request": {
            "description": _lookup(REQUEST_DESCRIPTIONS, subject_name, "Looking for assistance with Islamic studies."),
            "date_to_start": request.booking_date.isoformat() if request.booking_date else None,
            "time": format_time_range(request.start_time, request.end_time),
            "subjects": [subject_name],
        },
        "compatibility_score": recommendation.score.total,
        "score_breakdown": recommendation.score.as_dict(),
        "match_reasons": recommendation.match_reasons,
    }


def recommended_students(db: Session, teacher: User) -> List[Dict]:
    profile = (
        db.query(TeacherProfile)
        .options(joinedload(TeacherProfile.subjects))
        .filter(TeacherProfile.user_id == teacher.id)
        .first()
    )
    if profile is None:
        return []

    now = utc_now()
    # Requests dated today only count while their start time is still ahead.
    upcoming = or_(
        Booking.booking_date > now.date(),
        and_(Booking.booking_date == now.date(), Booking.start_time > now.time()),
    )
    bookings = (
        db.query(Booking)
        .options(joinedload(Booking.subject))
        .filter(Booking.status == STATUS_PENDING, upcoming)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )
    requests = [
        PendingRequest(
            booking_id=booking.id,
            student_id=booking.student_id,
            subject_name=booking.subject_name or "",
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
        )
        for booking in bookings
    ]
    settings = get_settings()
    matches = recommend(
        requests,
        profile.active_subject_names,
        profile.specialization_list,
        threshold=settings.recommendation_threshold,
        limit=settings.recommendation_limit,
    )
    student_ids = {match.request.student_id for match in matches}
    students = {user.id: user for user in db.query(User).filter(User.id.in_(student_ids)).all()} if student_ids else {}
    logger.info("Found %d recommended requests for teacher %s out of %d pending", len(matches), teacher.id, len(requests))
    return [_format(match, students) for match in matches]
