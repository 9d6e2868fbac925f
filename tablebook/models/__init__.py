from tablebook.models.booking import (
    AvailabilityResult,
    AvailabilitySlot,
    BookingDraft,
    CreateReservationRequest,
    GuestContact,
)
from tablebook.models.enums import (
    ActorRole,
    ErrorKind,
    OccasionType,
    ReservationFilter,
    ReservationStatus,
    WizardStep,
)
from tablebook.models.reservation import Reservation, SubmissionOutcome
from tablebook.models.restaurant import MenuItem, Restaurant, Review

__all__ = [
    "ActorRole",
    "AvailabilityResult",
    "AvailabilitySlot",
    "BookingDraft",
    "CreateReservationRequest",
    "ErrorKind",
    "GuestContact",
    "MenuItem",
    "OccasionType",
    "Reservation",
    "ReservationFilter",
    "ReservationStatus",
    "Restaurant",
    "Review",
    "SubmissionOutcome",
    "WizardStep",
]
