"""MCP tools driving a booking wizard session step by step."""

import logging

from fastmcp import FastMCP

from tablebook.clients.resilience import APIError
from tablebook.models.enums import OccasionType, WizardStep
from tablebook.server import get_app
from tablebook.tools.error_messages import get_user_message
from tablebook.tools.formatting import (
    format_date,
    format_time,
    guests_label,
    normalise_time,
    parse_date,
)
from tablebook.wizard.availability import nearby_slots
from tablebook.wizard.sessions import SessionNotFoundError
from tablebook.wizard.state_machine import BookingWizard

logger = logging.getLogger(__name__)

LARGE_PARTY_SIZE = 6
LARGE_PARTY_NOTICE = (
    "Large party: for parties of 6 or more, please call the restaurant "
    "directly for special arrangements."
)
# Notice name accepted by dismiss_notice -> ui_flags key
NOTICE_FLAGS: dict[str, str] = {"large_party": "notice.large_party.dismissed"}

STEP_LABELS: dict[WizardStep, str] = {
    WizardStep.IDLE: "No booking in progress",
    WizardStep.DATE_PARTY: "Step 1 of 3: date and party size",
    WizardStep.TIME_SELECTION: "Step 2 of 3: choose a time",
    WizardStep.GUEST_DETAILS: "Step 3 of 3: guest details",
    WizardStep.CONFIRMED: "Reservation confirmed",
}


def render_wizard(session_id: str, wizard: BookingWizard) -> str:
    """Describe a wizard session the way the booking form would show it."""
    lines = [f"Booking {session_id}: {STEP_LABELS[wizard.step]}"]

    if wizard.step == WizardStep.CONFIRMED and wizard.confirmation is not None:
        res = wizard.confirmation
        lines.append(f"Confirmation code: {res.confirmation_code}")
        if res.restaurant_name:
            lines.append(f"Restaurant: {res.restaurant_name}")
        lines.append(
            f"{format_date(res.date)} at {format_time(res.time)}, "
            f"{guests_label(res.party_size)} ({res.status.value})"
        )
        return "\n".join(lines)

    draft = wizard.draft
    if draft is not None:
        lines.append(f"Restaurant: {draft.restaurant_name or draft.restaurant_id}")
        when = format_date(draft.date) if draft.date else "no date"
        if draft.time:
            when += f" at {format_time(draft.time)}"
        lines.append(f"{when}, {guests_label(draft.party_size)}")
        if draft.occasion_type != OccasionType.NONE:
            lines.append(f"Occasion: {draft.occasion_type.value}")
        if draft.special_requests:
            lines.append(f"Special requests: {draft.special_requests}")
        if draft.dietary_restrictions:
            lines.append(f"Dietary: {', '.join(draft.dietary_restrictions)}")
        contact = draft.guest_contact
        if wizard.step == WizardStep.GUEST_DETAILS and contact.full_name:
            lines.append(f"Guest: {contact.full_name} <{contact.email}> {contact.phone}".rstrip())

    if wizard.step == WizardStep.TIME_SELECTION and wizard.availability is not None:
        times = [format_time(s.time) for s in wizard.availability.available_slots]
        if times:
            lines.append("Available times: " + ", ".join(times))
        elif not wizard.availability.error:
            lines.append("No times are available right now.")

    if wizard.error:
        lines.append(f"Error: {wizard.error}")
        for field, message in wizard.field_errors.items():
            if message != wizard.error:
                lines.append(f"  - {field}: {message}")
    return "\n".join(lines)


def _session(session_id: str) -> BookingWizard:
    return get_app().sessions.get(session_id)


async def _large_party_notice(party_size: int) -> str | None:
    if party_size < LARGE_PARTY_SIZE:
        return None
    if await get_app().db.get_flag(NOTICE_FLAGS["large_party"]):
        return None
    return LARGE_PARTY_NOTICE + ' (Hide this with dismiss_notice("large_party").)'


def register_booking_tools(mcp: FastMCP) -> None:  # noqa: C901
    """Register booking wizard tools on the MCP server."""

    @mcp.tool
    async def start_booking(
        restaurant_id: str,
        party_size: int = 2,
        date: str | None = None,
    ) -> str:
        """Start a new reservation at a restaurant.

        Opens a booking session on step 1 (date and party size). The date
        defaults to today.

        Args:
            restaurant_id: The restaurant's id.
            party_size: Number of guests (1-12).
            date: Optional date: "2026-02-14", "tomorrow", "Saturday", "in 3 days".

        Returns:
            The session id and the current booking state.
        """
        app = get_app()
        try:
            restaurant = await app.restaurants.get_restaurant(restaurant_id)
            restaurant_name: str | None = restaurant.name
        except APIError as exc:
            logger.warning("Could not load restaurant %s: %s", restaurant_id, exc)
            restaurant_name = None

        session_id, wizard = app.sessions.create()
        wizard.start(restaurant_id, restaurant_name, party_size=party_size)
        if date:
            try:
                wizard.set_date(parse_date(date, app.today()))
            except ValueError as exc:
                wizard.reject_field("date", str(exc))
        logger.info("Started booking %s for restaurant %s", session_id, restaurant_id)

        text = render_wizard(session_id, wizard)
        notice = await _large_party_notice(party_size)
        if notice:
            text += "\n" + notice
        return text

    @mcp.tool
    async def update_booking(
        session_id: str,
        date: str | None = None,
        party_size: int | None = None,
        occasion: str | None = None,
        special_requests: str | None = None,
        dietary_restrictions: list[str] | None = None,
    ) -> str:
        """Change booking details. Changing the date or party size clears
        the chosen time and returns to step 1.

        Args:
            session_id: Booking session id from start_booking.
            date: New date.
            party_size: New number of guests.
            occasion: none, birthday, anniversary, date, business, celebration.
            special_requests: Free-text requests for the restaurant.
            dietary_restrictions: e.g. ["vegetarian", "nut allergy"].

        Returns:
            The updated booking state.
        """
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        if wizard.draft is None:
            return render_wizard(session_id, wizard)

        if date is not None:
            try:
                wizard.set_date(parse_date(date, get_app().today()))
            except ValueError:
                return (
                    f"Could not parse date '{date}'. "
                    "Try YYYY-MM-DD, 'tomorrow', or a day name."
                )
        if party_size is not None:
            wizard.set_party_size(party_size)
        if occasion is not None:
            try:
                wizard.set_occasion(occasion.strip().lower())
            except ValueError:
                options = ", ".join(o.value for o in OccasionType)
                return f"Unknown occasion '{occasion}'. Choose one of: {options}."
        if special_requests is not None:
            wizard.set_special_requests(special_requests)
        if dietary_restrictions is not None:
            wizard.set_dietary_restrictions(dietary_restrictions)

        text = render_wizard(session_id, wizard)
        if party_size is not None:
            notice = await _large_party_notice(party_size)
            if notice:
                text += "\n" + notice
        return text

    @mcp.tool
    async def check_availability(session_id: str) -> str:
        """Find available times for the booking's date and party size.

        On step 1 this moves on to choosing a time when tables are free.
        Later steps just refresh the list of times.

        Args:
            session_id: Booking session id.

        Returns:
            Available times, or why none could be shown.
        """
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)

        if wizard.step == WizardStep.DATE_PARTY:
            await wizard.advance()
        elif wizard.step == WizardStep.TIME_SELECTION:
            await wizard.refresh_availability()
        return render_wizard(session_id, wizard)

    @mcp.tool
    async def select_time(session_id: str, time: str) -> str:
        """Pick one of the available times and continue to guest details.

        Args:
            session_id: Booking session id.
            time: A listed time, e.g. "7:30 PM" or "19:30".

        Returns:
            The booking state after the selection.
        """
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        if wizard.step != WizardStep.TIME_SELECTION:
            return (
                "Times can only be chosen after checking availability.\n"
                + render_wizard(session_id, wizard)
            )
        try:
            slot_time = normalise_time(time)
        except ValueError as exc:
            return str(exc)

        wizard.select_time(slot_time)
        await wizard.advance()
        return render_wizard(session_id, wizard)

    @mcp.tool
    async def enter_guest_details(
        session_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        accept_terms: bool | None = None,
    ) -> str:
        """Fill in who the reservation is for. All four contact fields and
        accepting the terms are required before completing.

        Args:
            session_id: Booking session id.
            first_name: Guest first name.
            last_name: Guest last name.
            email: Contact email.
            phone: Contact phone number.
            accept_terms: Agree to the restaurant's terms and cancellation policy.

        Returns:
            The booking state and any fields still missing.
        """
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        if wizard.draft is None:
            return render_wizard(session_id, wizard)

        wizard.update_guest_contact(
            first_name=first_name, last_name=last_name, email=email, phone=phone
        )
        if accept_terms is not None:
            wizard.set_accept_terms(accept_terms)

        text = render_wizard(session_id, wizard)
        if wizard.step == WizardStep.GUEST_DETAILS:
            missing = wizard.step_errors()
            if missing:
                text += "\nStill needed: " + "; ".join(missing.values())
            else:
                text += "\nReady to complete the reservation."
        return text

    @mcp.tool
    async def go_back(session_id: str) -> str:
        """Return to the previous step. Entered details are kept."""
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        wizard.previous()
        return render_wizard(session_id, wizard)

    @mcp.tool
    async def complete_reservation(session_id: str) -> str:
        """Submit the reservation.

        If the time was taken in the meantime, the booking goes back to
        choosing a time with a refreshed list.

        Args:
            session_id: Booking session id.

        Returns:
            The confirmation, or what needs fixing.
        """
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        if wizard.step != WizardStep.GUEST_DETAILS:
            return (
                "The booking is not ready to submit yet.\n"
                + render_wizard(session_id, wizard)
            )
        await wizard.submit()
        return render_wizard(session_id, wizard)

    @mcp.tool
    async def booking_status(session_id: str) -> str:
        """Show where a booking session stands."""
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        return render_wizard(session_id, wizard)

    @mcp.tool
    async def cancel_booking(session_id: str) -> str:
        """Abandon a booking in progress. Nothing is sent to the restaurant."""
        app = get_app()
        try:
            wizard = app.sessions.get(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        if wizard.cancel() != WizardStep.IDLE:
            return f"Booking {session_id} is busy. Try cancelling again in a moment."
        app.sessions.discard(session_id)
        return f"Booking {session_id} cancelled."

    @mcp.tool
    async def nearby_times(session_id: str, time: str) -> str:
        """List available times closest to a preferred time (within 90 minutes).

        Args:
            session_id: Booking session id (availability must be checked first).
            time: Preferred time, e.g. "7pm".

        Returns:
            Up to five nearby times, closest first.
        """
        try:
            wizard = _session(session_id)
        except SessionNotFoundError as exc:
            return get_user_message(exc)
        if wizard.availability is None:
            return "Check availability first."
        try:
            target = normalise_time(time)
        except ValueError as exc:
            return str(exc)

        nearby = nearby_slots(wizard.availability.slots, target)
        if not nearby:
            return f"No available times within 90 minutes of {format_time(target)}."
        return "Nearby times: " + ", ".join(format_time(s.time) for s in nearby)

    @mcp.tool
    async def dismiss_notice(notice: str) -> str:
        """Stop showing an informational notice.

        Args:
            notice: Notice name. Currently only "large_party".
        """
        key = NOTICE_FLAGS.get(notice.strip().lower())
        if key is None:
            return f"Unknown notice '{notice}'. Known notices: {', '.join(NOTICE_FLAGS)}."
        await get_app().db.set_flag(key)
        return f"Notice '{notice}' dismissed."
