"""Four-step booking wizard: date & party → time → guest details → confirmed.

The wizard owns one BookingDraft. Forward transitions are guarded by the
step validators; backward transitions never clear entered data. At most one
network operation (availability fetch or submission) runs at a time, and
availability responses for a superseded query are dropped.
"""

import logging
from collections.abc import Callable
from datetime import date

from tablebook.models.booking import AvailabilityResult, BookingDraft, GuestContact
from tablebook.models.enums import ErrorKind, OccasionType, WizardStep
from tablebook.models.reservation import Reservation
from tablebook.wizard.availability import AvailabilityProvider, SlotQueryTracker
from tablebook.wizard.errors import InvalidQueryError
from tablebook.wizard.submission import ReservationSubmitter
from tablebook.wizard.validation import (
    BookingLimits,
    validate_date_party,
    validate_guest_details,
    validate_time_selection,
)

logger = logging.getLogger(__name__)

NO_TABLES_MESSAGE = "No tables available for this date and party size"

_PREVIOUS: dict[WizardStep, WizardStep] = {
    WizardStep.TIME_SELECTION: WizardStep.DATE_PARTY,
    WizardStep.GUEST_DETAILS: WizardStep.TIME_SELECTION,
}


class BookingWizard:
    """State machine driving one booking session.

    Args:
        provider: Availability lookups.
        submitter: Reservation creation.
        limits: Bookable window and party-size range.
        today: Clock returning the current date.
    """

    def __init__(
        self,
        provider: AvailabilityProvider,
        submitter: ReservationSubmitter,
        limits: BookingLimits | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.provider = provider
        self.submitter = submitter
        self.limits = limits or BookingLimits()
        self.today = today

        self.step = WizardStep.IDLE
        self.draft: BookingDraft | None = None
        self.availability: AvailabilityResult | None = None
        self.confirmation: Reservation | None = None
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None
        self.field_errors: dict[str, str] = {}
        self.busy = False
        self._tracker = SlotQueryTracker()

    # ── Session lifecycle ──────────────────────────────────────────────

    def start(
        self,
        restaurant_id: str,
        restaurant_name: str | None = None,
        party_size: int = 2,
    ) -> WizardStep:
        """Bind the wizard to a restaurant with the form's defaults."""
        self.draft = BookingDraft(
            restaurant_id=restaurant_id,
            restaurant_name=restaurant_name,
            date=self.today().isoformat(),
            party_size=party_size,
        )
        self.availability = None
        self.confirmation = None
        self._clear_errors()
        self._tracker.invalidate()
        self.step = WizardStep.DATE_PARTY
        return self.step

    def cancel(self) -> WizardStep:
        """Discard the draft and any pending availability result.

        Refused while a fetch or submission is in flight.
        """
        if self.busy:
            logger.warning("Ignoring cancel from %s: request in flight", self.step)
            return self.step
        self._tracker.invalidate()
        self.draft = None
        self.availability = None
        self._clear_errors()
        self.step = WizardStep.IDLE
        return self.step

    # ── Field updates ──────────────────────────────────────────────────

    def set_date(self, day: str) -> None:
        draft = self._require_draft()
        if draft.date != day:
            draft.date = day
            self._invalidate_availability()

    def set_party_size(self, party_size: int) -> None:
        draft = self._require_draft()
        if draft.party_size != party_size:
            draft.party_size = party_size
            self._invalidate_availability()

    def set_occasion(self, occasion: OccasionType | str) -> None:
        self._require_draft().occasion_type = OccasionType(occasion)

    def set_special_requests(self, text: str) -> None:
        self._require_draft().special_requests = text

    def set_dietary_restrictions(self, restrictions: list[str]) -> None:
        self._require_draft().dietary_restrictions = list(restrictions)

    def select_time(self, time: str) -> None:
        self._require_draft().time = time
        self.field_errors.pop("time", None)

    def update_guest_contact(self, **fields: str | None) -> None:
        """Set any of first_name, last_name, email, phone; ``None`` leaves a field as is."""
        draft = self._require_draft()
        current = draft.guest_contact.model_dump()
        unknown = set(fields) - current.keys()
        if unknown:
            raise ValueError(f"Unknown guest fields: {sorted(unknown)}")
        current.update({k: v for k, v in fields.items() if v is not None})
        draft.guest_contact = GuestContact(**current)

    def set_accept_terms(self, accepted: bool) -> None:
        self._require_draft().accept_terms = accepted

    def reject_field(self, field: str, message: str) -> None:
        """Record an inline error for *field* without changing step."""
        self._set_errors({field: message})

    # ── Guards ─────────────────────────────────────────────────────────

    def step_errors(self) -> dict[str, str]:
        """Errors that currently block leaving the active step."""
        if self.draft is None:
            return {}
        if self.step == WizardStep.DATE_PARTY:
            return validate_date_party(self.draft, self.limits, self.today())
        if self.step == WizardStep.TIME_SELECTION:
            return validate_time_selection(self.draft, self.availability)
        if self.step == WizardStep.GUEST_DETAILS:
            return validate_guest_details(self.draft)
        return {}

    @property
    def can_advance(self) -> bool:
        """Whether the active step's forward control is enabled."""
        if self.busy or self.draft is None:
            return False
        if self.step in (WizardStep.IDLE, WizardStep.CONFIRMED):
            return False
        return not self.step_errors()

    @property
    def can_submit(self) -> bool:
        """Whether "Complete Reservation" is enabled."""
        return self.step == WizardStep.GUEST_DETAILS and self.can_advance

    # ── Transitions ────────────────────────────────────────────────────

    async def advance(self) -> WizardStep:
        """Move forward one step if the active step's guard passes."""
        if self.busy:
            logger.warning("Ignoring advance from %s: request in flight", self.step)
            return self.step
        if self.draft is None or self.step in (WizardStep.IDLE, WizardStep.CONFIRMED):
            return self.step

        errors = self.step_errors()
        if errors:
            self._set_errors(errors)
            return self.step

        if self.step == WizardStep.DATE_PARTY:
            return await self._check_availability()
        if self.step == WizardStep.TIME_SELECTION:
            self._clear_errors()
            self.step = WizardStep.GUEST_DETAILS
            return self.step
        return await self.submit()

    def previous(self) -> WizardStep:
        """Step back; entered data is kept."""
        if self.step in _PREVIOUS:
            self.step = _PREVIOUS[self.step]
            self._clear_errors()
        return self.step

    async def refresh_availability(self) -> AvailabilityResult | None:
        """Re-query slots for the current date and party size without moving.

        Returns:
            The applied result, or ``None`` if the query was refused or went stale.
        """
        if self.busy or self.draft is None:
            return None
        draft = self.draft
        self.busy = True
        try:
            result = await self._tracker.fetch(
                self.provider, draft.restaurant_id, draft.date, draft.party_size
            )
        except InvalidQueryError as exc:
            self._set_errors(exc.field_errors)
            return None
        finally:
            self.busy = False

        if result is not None:
            self.availability = result
            if result.error:
                self.error = result.message
                self.error_kind = ErrorKind.TRANSPORT
            else:
                self._clear_errors()
        return result

    async def submit(self) -> WizardStep:
        """Send the draft; on failure return to the step the failure points at."""
        if self.busy:
            logger.warning("Ignoring submit: request in flight")
            return self.step
        if self.draft is None or self.step != WizardStep.GUEST_DETAILS:
            return self.step

        errors = validate_guest_details(self.draft)
        if errors:
            self._set_errors(errors)
            return self.step

        self.busy = True
        try:
            outcome = await self.submitter.submit(self.draft)
        finally:
            self.busy = False

        if outcome.success:
            self.confirmation = outcome.reservation
            self.draft = None
            self.availability = None
            self._clear_errors()
            self.step = WizardStep.CONFIRMED
            return self.step

        self.step = outcome.return_step or WizardStep.GUEST_DETAILS
        if outcome.error_kind == ErrorKind.CONFLICT:
            self._require_draft().time = ""
            self.availability = None
            await self.refresh_availability()
        self.error = outcome.message
        self.error_kind = outcome.error_kind
        self.field_errors = dict(outcome.field_errors)
        return self.step

    # ── Internals ──────────────────────────────────────────────────────

    async def _check_availability(self) -> WizardStep:
        self._clear_errors()
        result = await self.refresh_availability()
        if result is None:
            # refused, invalid, or superseded by a newer query
            return self.step

        if result.error:
            return self.step
        if not result.available_slots:
            self.error = NO_TABLES_MESSAGE
        else:
            self.step = WizardStep.TIME_SELECTION
        return self.step

    def _invalidate_availability(self) -> None:
        self._tracker.invalidate()
        self.availability = None
        if self.draft is not None:
            self.draft.time = ""
        if self.step in (WizardStep.TIME_SELECTION, WizardStep.GUEST_DETAILS):
            self.step = WizardStep.DATE_PARTY

    def _require_draft(self) -> BookingDraft:
        if self.draft is None:
            raise RuntimeError("Booking wizard has no active draft. Call start() first.")
        return self.draft

    def _set_errors(self, errors: dict[str, str]) -> None:
        self.field_errors = dict(errors)
        self.error = next(iter(errors.values()))
        self.error_kind = ErrorKind.VALIDATION

    def _clear_errors(self) -> None:
        self.error = None
        self.error_kind = None
        self.field_errors = {}
