"""Reservation lists and owner-side status changes."""

import logging
from datetime import date

from tablebook.models.enums import ActorRole, ReservationFilter, ReservationStatus
from tablebook.models.reservation import Reservation

logger = logging.getLogger(__name__)

# One-way moves; a reservation only leaves these states by another explicit action
ALLOWED_TRANSITIONS: dict[ReservationStatus, set[ReservationStatus]] = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}

ACTIONS: dict[str, ReservationStatus] = {
    "confirm": ReservationStatus.CONFIRMED,
    "cancel": ReservationStatus.CANCELLED,
    "complete": ReservationStatus.COMPLETED,
}


class InvalidTransitionError(ValueError):
    """The reservation's current status does not allow the requested change."""


class PermissionDeniedError(PermissionError):
    """The actor's role may not perform the requested change."""


def filter_reservations(
    reservations: list[Reservation],
    filter_: ReservationFilter | str,
    today: date,
) -> list[Reservation]:
    """Apply a list filter and sort by date and time.

    - ``all``: everything
    - ``today``: reservations dated today
    - ``upcoming``: today or later and not cancelled
    - ``pending``: awaiting confirmation
    """
    filter_ = ReservationFilter(filter_)
    if filter_ == ReservationFilter.TODAY:
        selected = [r for r in reservations if r.date_time.date() == today]
    elif filter_ == ReservationFilter.UPCOMING:
        selected = [
            r for r in reservations
            if r.date_time.date() >= today and r.status != ReservationStatus.CANCELLED
        ]
    elif filter_ == ReservationFilter.PENDING:
        selected = [r for r in reservations if r.status == ReservationStatus.PENDING]
    else:
        selected = list(reservations)
    return sorted(selected, key=lambda r: r.date_time)


def check_transition(
    reservation: Reservation, new_status: ReservationStatus, role: ActorRole
) -> None:
    """Raise unless *role* may move *reservation* to *new_status*.

    Owners and admins may confirm, complete or cancel. Guests may only
    cancel their own booking.

    Raises:
        PermissionDeniedError: The role may not make this change.
        InvalidTransitionError: The current status does not allow it.
    """
    if role == ActorRole.GUEST and new_status != ReservationStatus.CANCELLED:
        raise PermissionDeniedError(
            f"Only the restaurant can mark a reservation as {new_status.value}"
        )
    if new_status not in ALLOWED_TRANSITIONS[reservation.status]:
        raise InvalidTransitionError(
            f"Cannot change a {reservation.status.value} reservation to {new_status.value}"
        )


class ReservationManager:
    """List reservations and apply status changes through the API.

    Args:
        client: ReservationAPIClient (or anything with the same methods).
        store: Optional local DatabaseManager kept in step with changes.
    """

    def __init__(self, client: object, store: object | None = None) -> None:
        self.client = client
        self.store = store

    async def list_reservations(
        self,
        filter_: ReservationFilter | str = ReservationFilter.ALL,
        today: date | None = None,
    ) -> list[Reservation]:
        filter_ = ReservationFilter(filter_)
        status = ReservationStatus.PENDING if filter_ == ReservationFilter.PENDING else None
        reservations = await self.client.list_reservations(status=status)  # type: ignore[attr-defined]
        if self.store is not None:
            # Bookings made here that the API does not list; the API copy wins
            known = {r.id for r in reservations}
            local = await self.store.list_reservations()  # type: ignore[attr-defined]
            reservations = reservations + [r for r in local if r.id not in known]
        return filter_reservations(reservations, filter_, today or date.today())

    async def find(self, reservation_id: str) -> Reservation | None:
        """Look a reservation up in the API's list, then in the local store."""
        for reservation in await self.client.list_reservations():  # type: ignore[attr-defined]
            if reservation.id == reservation_id:
                return reservation
        if self.store is not None:
            return await self.store.get_reservation(reservation_id)  # type: ignore[attr-defined]
        return None

    async def change_status(
        self,
        reservation: Reservation,
        new_status: ReservationStatus,
        role: ActorRole = ActorRole.OWNER,
    ) -> Reservation:
        check_transition(reservation, new_status, role)

        updated = await self.client.update_reservation_status(  # type: ignore[attr-defined]
            reservation.id, new_status
        )
        if updated is None:
            updated = reservation.model_copy(update={"status": new_status})
        if self.store is not None:
            await self.store.update_reservation_status(reservation.id, new_status)  # type: ignore[attr-defined]

        logger.info(
            "Reservation %s: %s -> %s (%s)",
            reservation.id, reservation.status.value, new_status.value, role.value,
        )
        return updated

    async def confirm(self, reservation: Reservation, role: ActorRole = ActorRole.OWNER) -> Reservation:
        return await self.change_status(reservation, ReservationStatus.CONFIRMED, role)

    async def cancel(self, reservation: Reservation, role: ActorRole = ActorRole.OWNER) -> Reservation:
        return await self.change_status(reservation, ReservationStatus.CANCELLED, role)

    async def complete(self, reservation: Reservation, role: ActorRole = ActorRole.OWNER) -> Reservation:
        return await self.change_status(reservation, ReservationStatus.COMPLETED, role)
