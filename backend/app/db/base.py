from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.user import User  # noqa: F401
from backend.app.models.guardian_link import GuardianStudentLink  # noqa: F401
from backend.app.models.teacher_profile import TeacherProfile  # noqa: F401
from backend.app.models.subject import Subject  # noqa: F401
from backend.app.models.availability import AvailabilityPreference, TeacherAvailability  # noqa: F401
from backend.app.models.booking import Booking  # noqa: F401
from backend.app.models.booking_history import BookingHistory  # noqa: F401
from backend.app.models.teaching_session import TeachingSession  # noqa: F401
from backend.app.models.booking_modification import BookingModification  # noqa: F401
from backend.app.models.booking_draft import BookingDraft  # noqa: F401
from backend.app.models.notification import Notification  # noqa: F401
