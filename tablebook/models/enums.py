from enum import StrEnum


class WizardStep(StrEnum):
    IDLE = "idle"
    DATE_PARTY = "date_party"
    TIME_SELECTION = "time_selection"
    GUEST_DETAILS = "guest_details"
    CONFIRMED = "confirmed"


class ReservationStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OccasionType(StrEnum):
    NONE = "none"
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    DATE = "date"
    BUSINESS = "business"
    CELEBRATION = "celebration"


class ReservationFilter(StrEnum):
    ALL = "all"
    TODAY = "today"
    UPCOMING = "upcoming"
    PENDING = "pending"


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    TRANSPORT = "transport"


class ActorRole(StrEnum):
    GUEST = "guest"
    OWNER = "owner"
    ADMIN = "admin"
