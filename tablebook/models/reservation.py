from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from tablebook.models.enums import ErrorKind, ReservationStatus, WizardStep


class Reservation(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    status: ReservationStatus = ReservationStatus.PENDING
    confirmation_code: str
    date_time: datetime
    party_size: int
    table_id: str | None = None
    restaurant_id: str | None = None
    restaurant_name: str | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    guest_phone: str | None = None
    special_requests: str | None = None
    occasion_type: str | None = None
    created_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _combine_date_and_time(cls, data: object) -> object:
        """Accept ``date`` + ``time`` fields when ``dateTime`` is absent."""
        if not isinstance(data, dict):
            return data
        if data.get("dateTime") or data.get("date_time"):
            return data
        day, time = data.get("date"), data.get("time")
        if day and time:
            data = {**data, "date_time": f"{day}T{time}"}
        return data

    @property
    def date(self) -> str:
        return self.date_time.date().isoformat()

    @property
    def time(self) -> str:
        return self.date_time.strftime("%H:%M")


class SubmissionOutcome(BaseModel):
    success: bool
    reservation: Reservation | None = None
    error_kind: ErrorKind | None = None
    message: str
    return_step: WizardStep | None = None
    field_errors: dict[str, str] = {}
