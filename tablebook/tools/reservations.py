"""MCP tools for listing reservations and changing their status."""

import logging

from fastmcp import FastMCP

from tablebook.display.reservations import ACTIONS
from tablebook.models.enums import ActorRole, ReservationFilter
from tablebook.models.reservation import Reservation
from tablebook.server import get_app
from tablebook.tools.error_messages import get_user_message, safe_tool_wrapper
from tablebook.tools.formatting import format_date, format_time, guests_label

logger = logging.getLogger(__name__)


def format_reservation(res: Reservation) -> str:
    where = f" at {res.restaurant_name}" if res.restaurant_name else ""
    line = (
        f"- {res.confirmation_code}: {format_date(res.date)} {format_time(res.time)}, "
        f"{guests_label(res.party_size)}{where} [{res.status.value}] (id {res.id})"
    )
    if res.guest_name:
        line += f"\n    Guest: {res.guest_name}"
    if res.special_requests:
        line += f"\n    Requests: {res.special_requests}"
    return line


def register_reservation_tools(mcp: FastMCP) -> None:
    """Register reservation list and status tools on the MCP server."""

    @mcp.tool
    async def my_reservations(filter: str = "upcoming") -> str:
        """List reservations, sorted by date and time.

        Args:
            filter: "all", "today", "upcoming" (not cancelled, today or later)
                    or "pending" (awaiting confirmation).

        Returns:
            One line per reservation, or a message if there are none.
        """
        try:
            filter_ = ReservationFilter(filter.strip().lower())
        except ValueError:
            options = ", ".join(f.value for f in ReservationFilter)
            return f"Unknown filter '{filter}'. Choose one of: {options}."

        app = get_app()

        async def _list() -> str:
            reservations = await app.reservations.list_reservations(filter_, app.today())
            if not reservations:
                return f"No {filter_.value} reservations."
            lines = [f"{len(reservations)} {filter_.value} reservation(s):"]
            lines.extend(format_reservation(r) for r in reservations)
            return "\n".join(lines)

        return await safe_tool_wrapper(_list)

    @mcp.tool
    async def update_reservation_status(
        reservation_id: str,
        action: str,
        role: str = "owner",
    ) -> str:
        """Confirm, cancel, or complete a reservation.

        Pending reservations can be confirmed or cancelled; confirmed ones
        completed or cancelled. Guests may only cancel.

        Args:
            reservation_id: The reservation's id.
            action: "confirm", "cancel" or "complete".
            role: Who is acting: "owner", "admin" or "guest".

        Returns:
            The updated reservation, or why the change is not allowed.
        """
        new_status = ACTIONS.get(action.strip().lower())
        if new_status is None:
            return f"Unknown action '{action}'. Choose one of: {', '.join(ACTIONS)}."
        try:
            actor = ActorRole(role.strip().lower())
        except ValueError:
            return f"Unknown role '{role}'. Choose one of: {', '.join(r.value for r in ActorRole)}."

        app = get_app()
        try:
            reservation = await app.reservations.find(reservation_id)
            if reservation is None:
                return f"Reservation {reservation_id} not found."
            updated = await app.reservations.change_status(reservation, new_status, actor)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Status change failed for %s", reservation_id)
            return get_user_message(exc)
        return "Reservation updated:\n" + format_reservation(updated)

    @mcp.tool
    async def reservation_confirmation(reference: str) -> str:
        """Show a reservation made through this service by id or confirmation code."""
        db = get_app().db
        reservation = await db.get_reservation(reference)
        if reservation is None:
            reservation = await db.get_reservation_by_code(reference)
        if reservation is None:
            return f"No reservation found for '{reference}'."
        return format_reservation(reservation)
