"""Turn a validated BookingDraft into a reservation."""

import logging
from collections.abc import Callable
from datetime import date

from tablebook.clients.resilience import (
    APIError,
    ConflictError,
    ValidationAPIError,
)
from tablebook.models.booking import BookingDraft, CreateReservationRequest
from tablebook.models.enums import ErrorKind, WizardStep
from tablebook.models.reservation import SubmissionOutcome
from tablebook.wizard.validation import BookingLimits, validate_for_submission

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "That time is no longer available. Please choose another time."
VALIDATION_MESSAGE = "Please check your reservation details and try again."
TRANSPORT_MESSAGE = "Failed to create booking. Please try again."


class ReservationSubmitter:
    """Create reservations and classify failures by where the guest should go next.

    Args:
        client: Object exposing ``create_reservation(CreateReservationRequest)``.
        limits: Bookable window and party-size range, re-checked before sending.
        store: Optional local store; created reservations are saved to it.
        today: Clock returning the current date.
    """

    def __init__(
        self,
        client: object,
        limits: BookingLimits | None = None,
        store: object | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.client = client
        self.limits = limits or BookingLimits()
        self.store = store
        self.today = today

    async def submit(self, draft: BookingDraft) -> SubmissionOutcome:
        errors, failed_step = validate_for_submission(draft, self.limits, self.today())
        if errors:
            return SubmissionOutcome(
                success=False,
                error_kind=ErrorKind.VALIDATION,
                message=next(iter(errors.values())),
                return_step=failed_step,
                field_errors=errors,
            )

        request = CreateReservationRequest.from_draft(draft)
        try:
            reservation = await self.client.create_reservation(request)  # type: ignore[attr-defined]
        except ConflictError as exc:
            logger.warning(
                "Slot %s %s at %s taken before submission: %s",
                draft.date, draft.time, draft.restaurant_id, exc,
            )
            return SubmissionOutcome(
                success=False,
                error_kind=ErrorKind.CONFLICT,
                message=exc.server_message or CONFLICT_MESSAGE,
                return_step=WizardStep.TIME_SELECTION,
            )
        except ValidationAPIError as exc:
            logger.warning("Reservation rejected for %s: %s", draft.restaurant_id, exc)
            return SubmissionOutcome(
                success=False,
                error_kind=ErrorKind.VALIDATION,
                message=exc.server_message or VALIDATION_MESSAGE,
                return_step=WizardStep.GUEST_DETAILS,
            )
        except APIError as exc:
            logger.warning("Reservation request failed for %s: %s", draft.restaurant_id, exc)
            return SubmissionOutcome(
                success=False,
                error_kind=ErrorKind.TRANSPORT,
                message=exc.server_message or TRANSPORT_MESSAGE,
                return_step=WizardStep.GUEST_DETAILS,
            )

        if draft.restaurant_name and not reservation.restaurant_name:
            reservation = reservation.model_copy(
                update={"restaurant_name": draft.restaurant_name}
            )
        if self.store is not None:
            # The booking stands even when the local copy cannot be written
            try:
                await self.store.save_reservation(reservation)  # type: ignore[attr-defined]
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Could not save reservation %s locally", reservation.id, exc_info=True
                )

        return SubmissionOutcome(
            success=True,
            reservation=reservation,
            message=f"Reservation confirmed. Confirmation code: {reservation.confirmation_code}",
        )
