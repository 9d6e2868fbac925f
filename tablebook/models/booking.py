from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tablebook.models.enums import OccasionType


class GuestContact(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()


class BookingDraft(BaseModel):
    """In-progress selections of one wizard session."""

    model_config = ConfigDict(validate_assignment=True)

    restaurant_id: str
    restaurant_name: str | None = None
    date: str = ""
    time: str = ""
    party_size: int = 2
    occasion_type: OccasionType = OccasionType.NONE
    special_requests: str = ""
    guest_contact: GuestContact = Field(default_factory=GuestContact)
    dietary_restrictions: list[str] = []
    accept_terms: bool = False


class AvailabilitySlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    available: bool = True
    seats_available: int | None = None


class AvailabilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    restaurant_id: str
    date: str
    party_size: int
    slots: tuple[AvailabilitySlot, ...] = ()
    error: bool = False
    message: str | None = None
    generation: int = 0

    @property
    def available_slots(self) -> list[AvailabilitySlot]:
        return [s for s in self.slots if s.available]

    def find(self, time: str) -> AvailabilitySlot | None:
        for slot in self.slots:
            if slot.time == time:
                return slot
        return None


class CreateReservationRequest(BaseModel):
    """Wire payload for ``POST /api/bookings``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    restaurant_id: str
    date: str
    time: str
    party_size: int
    guest_name: str
    guest_email: str
    guest_phone: str
    special_requests: str | None = None
    occasion_type: OccasionType | None = None
    dietary_restrictions: list[str] = []

    @classmethod
    def from_draft(cls, draft: BookingDraft) -> "CreateReservationRequest":
        contact = draft.guest_contact
        return cls(
            restaurant_id=draft.restaurant_id,
            date=draft.date,
            time=draft.time,
            party_size=draft.party_size,
            guest_name=contact.full_name,
            guest_email=contact.email.strip(),
            guest_phone=contact.phone.strip(),
            special_requests=draft.special_requests.strip() or None,
            occasion_type=(
                draft.occasion_type
                if draft.occasion_type != OccasionType.NONE
                else None
            ),
            dietary_restrictions=list(draft.dietary_restrictions),
        )

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
