"""Per-step guards for the booking wizard.

Each ``validate_*`` function returns a mapping of field name to message;
an empty mapping means the step's guard passes.
"""

from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict

from tablebook.models.booking import AvailabilityResult, BookingDraft
from tablebook.models.enums import WizardStep

GUEST_FIELDS: dict[str, str] = {
    "first_name": "First name is required",
    "last_name": "Last name is required",
    "email": "Email is required",
    "phone": "Phone number is required",
}


class BookingLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_advance_days: int = 90
    min_party_size: int = 1
    max_party_size: int = 12

    @classmethod
    def from_settings(cls, settings: object) -> "BookingLimits":
        return cls(
            max_advance_days=settings.max_advance_days,  # type: ignore[attr-defined]
            min_party_size=settings.min_party_size,  # type: ignore[attr-defined]
            max_party_size=settings.max_party_size,  # type: ignore[attr-defined]
        )


def parse_iso_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        return None


def validate_query(
    day: str,
    party_size: int,
    limits: BookingLimits,
    today: date,
) -> dict[str, str]:
    """Check the availability-query constraints on date and party size."""
    errors: dict[str, str] = {}

    parsed = parse_iso_date(day) if day else None
    if not day:
        errors["date"] = "Select a date"
    elif parsed is None:
        errors["date"] = f"Invalid date '{day}', expected YYYY-MM-DD"
    elif parsed < today:
        errors["date"] = "Reservation date must be today or later"
    elif parsed > today + timedelta(days=limits.max_advance_days):
        errors["date"] = (
            f"Reservations can only be made up to "
            f"{limits.max_advance_days} days in advance"
        )

    if party_size < 1:
        errors["party_size"] = "Party size must be at least 1"
    elif not limits.min_party_size <= party_size <= limits.max_party_size:
        errors["party_size"] = (
            f"Party size must be between {limits.min_party_size} "
            f"and {limits.max_party_size}"
        )
    return errors


def validate_date_party(
    draft: BookingDraft, limits: BookingLimits, today: date
) -> dict[str, str]:
    return validate_query(draft.date, draft.party_size, limits, today)


def validate_time_selection(
    draft: BookingDraft, availability: AvailabilityResult | None
) -> dict[str, str]:
    """The selected time must come from the fetched slots and still be open."""
    if not draft.time:
        return {"time": "Select a time"}
    if availability is None:
        return {"time": "Check availability before choosing a time"}

    slot = availability.find(draft.time)
    if slot is None:
        return {"time": f"{draft.time} is not one of the available times"}
    if not slot.available:
        return {"time": f"{draft.time} is no longer available"}
    return {}


def validate_guest_details(draft: BookingDraft) -> dict[str, str]:
    errors = {
        field: message
        for field, message in GUEST_FIELDS.items()
        if not getattr(draft.guest_contact, field).strip()
    }
    if not draft.accept_terms:
        errors["accept_terms"] = "Accept the cancellation policy and terms to continue"
    return errors


def validate_for_submission(
    draft: BookingDraft, limits: BookingLimits, today: date
) -> tuple[dict[str, str], WizardStep | None]:
    """Re-check every guard a submission depends on.

    Returns:
        ``(errors, step)`` where *step* is the earliest step whose guard
        failed, or ``None`` when the draft may be submitted.
    """
    errors = validate_date_party(draft, limits, today)
    if errors:
        return errors, WizardStep.DATE_PARTY
    if not draft.time:
        return {"time": "Select a time"}, WizardStep.TIME_SELECTION
    errors = validate_guest_details(draft)
    if errors:
        return errors, WizardStep.GUEST_DETAILS
    return {}, None
