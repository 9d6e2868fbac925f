"""Tests for tablebook.tools.booking: driving a wizard session through MCP tools."""

import re
from unittest.mock import patch

import pytest
from fastmcp import Client, FastMCP

from tablebook.clients.resilience import ConflictError, NotFoundError, TransientAPIError
from tablebook.models.enums import ErrorKind
from tablebook.tools.booking import NOTICE_FLAGS, register_booking_tools


@pytest.fixture
def booking_mcp(app):
    test_mcp = FastMCP("test")
    with patch("tablebook.tools.booking.get_app", return_value=app):
        register_booking_tools(test_mcp)
        yield test_mcp


async def _call(mcp, tool, **args) -> str:
    async with Client(mcp) as client:
        result = await client.call_tool(tool, args)
    return result.content[0].text


def _session_id(text: str) -> str:
    match = re.search(r"Booking (\w+):", text)
    assert match, text
    return match.group(1)


async def _to_guest_details(mcp) -> str:
    sid = _session_id(
        await _call(mcp, "start_booking", restaurant_id="rest-1", date="2026-02-14")
    )
    await _call(mcp, "check_availability", session_id=sid)
    await _call(mcp, "select_time", session_id=sid, time="7pm")
    return sid


class TestStartBooking:
    async def test_opens_first_step(self, booking_mcp, app):
        text = await _call(booking_mcp, "start_booking", restaurant_id="rest-1")

        assert "Step 1 of 3" in text
        assert "Test Bistro" in text
        assert "Tue, Feb 10" in text
        assert "2 Guests" in text
        assert _session_id(text) in app.sessions

    async def test_natural_language_date(self, booking_mcp):
        text = await _call(
            booking_mcp, "start_booking", restaurant_id="rest-1", date="in 4 days"
        )
        assert "Sat, Feb 14" in text

    async def test_unparseable_date_is_an_inline_error(self, booking_mcp, app):
        text = await _call(
            booking_mcp, "start_booking", restaurant_id="rest-1", date="someday"
        )

        assert "Error: Cannot parse date: 'someday'" in text
        wizard = app.sessions.get(_session_id(text))
        assert wizard.error_kind == ErrorKind.VALIDATION
        assert wizard.draft.date == "2026-02-10"

    async def test_unknown_restaurant_details_still_starts(self, booking_mcp, api):
        api.get_restaurant.side_effect = NotFoundError("missing")
        text = await _call(booking_mcp, "start_booking", restaurant_id="rest-9")
        assert "Restaurant: rest-9" in text

    async def test_large_party_notice(self, booking_mcp):
        text = await _call(booking_mcp, "start_booking", restaurant_id="rest-1", party_size=8)
        assert "Large party" in text

    async def test_large_party_notice_dismissed(self, booking_mcp, app):
        await app.db.set_flag(NOTICE_FLAGS["large_party"])
        text = await _call(booking_mcp, "start_booking", restaurant_id="rest-1", party_size=8)
        assert "Large party" not in text

    async def test_no_notice_for_small_party(self, booking_mcp):
        text = await _call(booking_mcp, "start_booking", restaurant_id="rest-1", party_size=5)
        assert "Large party" not in text


class TestCheckAvailability:
    async def test_lists_sorted_times(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))

        text = await _call(booking_mcp, "check_availability", session_id=sid)

        assert "Step 2 of 3" in text
        assert "Available times: 6:00 PM, 7:00 PM, 8:30 PM" in text

    async def test_failure_stays_on_first_step(self, booking_mcp, api):
        api.get_availability.side_effect = TransientAPIError("down")
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))

        text = await _call(booking_mcp, "check_availability", session_id=sid)

        assert "Step 1 of 3" in text
        assert "Failed to check availability" in text

    async def test_failed_refresh_reports_error(self, booking_mcp, api):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        await _call(booking_mcp, "check_availability", session_id=sid)
        api.get_availability.side_effect = TransientAPIError("down")

        text = await _call(booking_mcp, "check_availability", session_id=sid)

        assert "Step 2 of 3" in text
        assert "Error: Failed to check availability" in text
        assert "Available times" not in text

    async def test_out_of_range_party(self, booking_mcp):
        sid = _session_id(
            await _call(booking_mcp, "start_booking", restaurant_id="rest-1", party_size=20)
        )
        text = await _call(booking_mcp, "check_availability", session_id=sid)
        assert "Party size must be between 1 and 12" in text

    async def test_unknown_session(self, booking_mcp):
        text = await _call(booking_mcp, "check_availability", session_id="nope")
        assert "No booking in progress with id nope" in text


class TestSelectTime:
    async def test_moves_to_guest_details(self, booking_mcp):
        sid = await _to_guest_details(booking_mcp)
        text = await _call(booking_mcp, "booking_status", session_id=sid)
        assert "Step 3 of 3" in text
        assert "at 7:00 PM" in text

    async def test_before_availability(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        text = await _call(booking_mcp, "select_time", session_id=sid, time="19:00")
        assert "after checking availability" in text

    async def test_unlisted_time(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        await _call(booking_mcp, "check_availability", session_id=sid)

        text = await _call(booking_mcp, "select_time", session_id=sid, time="10pm")

        assert "Step 2 of 3" in text
        assert "not one of the available times" in text

    async def test_unparseable_time(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        await _call(booking_mcp, "check_availability", session_id=sid)
        text = await _call(booking_mcp, "select_time", session_id=sid, time="dinner")
        assert "Cannot parse time" in text


class TestUpdateBooking:
    async def test_party_change_returns_to_first_step(self, booking_mcp):
        sid = await _to_guest_details(booking_mcp)

        text = await _call(booking_mcp, "update_booking", session_id=sid, party_size=4)

        assert "Step 1 of 3" in text
        assert "4 Guests" in text
        assert "7:00 PM" not in text

    async def test_occasion_and_requests(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))

        text = await _call(
            booking_mcp,
            "update_booking",
            session_id=sid,
            occasion="Birthday",
            special_requests="Quiet table",
            dietary_restrictions=["vegetarian"],
        )

        assert "Occasion: birthday" in text
        assert "Special requests: Quiet table" in text
        assert "Dietary: vegetarian" in text

    async def test_unknown_occasion(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        text = await _call(booking_mcp, "update_booking", session_id=sid, occasion="wake")
        assert "Unknown occasion" in text

    async def test_bad_date(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        text = await _call(booking_mcp, "update_booking", session_id=sid, date="someday")
        assert "Could not parse date" in text


class TestGuestDetailsAndSubmit:
    async def test_missing_fields_listed(self, booking_mcp):
        sid = await _to_guest_details(booking_mcp)

        text = await _call(
            booking_mcp, "enter_guest_details", session_id=sid,
            first_name="Ada", last_name="Lovelace", email="ada@example.com",
        )

        assert "Still needed" in text
        assert "Phone number is required" in text

    async def test_full_booking_flow(self, booking_mcp, app, api):
        sid = await _to_guest_details(booking_mcp)
        text = await _call(
            booking_mcp, "enter_guest_details", session_id=sid,
            first_name="Ada", last_name="Lovelace", email="ada@example.com",
            phone="555-0100", accept_terms=True,
        )
        assert "Ready to complete" in text

        text = await _call(booking_mcp, "complete_reservation", session_id=sid)

        assert "Reservation confirmed" in text
        assert "Confirmation code: ABC123" in text
        request = api.create_reservation.await_args.args[0]
        assert (request.date, request.time) == ("2026-02-14", "19:00")
        assert await app.db.get_reservation("res-new") is not None

    async def test_complete_blocked_without_phone(self, booking_mcp, api):
        sid = await _to_guest_details(booking_mcp)
        await _call(
            booking_mcp, "enter_guest_details", session_id=sid,
            first_name="Ada", last_name="Lovelace", email="ada@example.com",
            accept_terms=True,
        )

        text = await _call(booking_mcp, "complete_reservation", session_id=sid)

        assert "Phone number is required" in text
        api.create_reservation.assert_not_awaited()

    async def test_conflict_returns_to_time_selection(self, booking_mcp, api):
        api.create_reservation.side_effect = ConflictError(
            "taken", status_code=409, server_message="Time slot is no longer available"
        )
        sid = await _to_guest_details(booking_mcp)
        await _call(
            booking_mcp, "enter_guest_details", session_id=sid,
            first_name="Ada", last_name="Lovelace", email="ada@example.com",
            phone="555-0100", accept_terms=True,
        )
        api.get_availability.return_value = []

        text = await _call(booking_mcp, "complete_reservation", session_id=sid)

        assert "Step 2 of 3" in text
        assert "Time slot is no longer available" in text
        assert api.get_availability.await_count == 2

    async def test_complete_too_early(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        text = await _call(booking_mcp, "complete_reservation", session_id=sid)
        assert "not ready to submit" in text

    async def test_go_back_keeps_details(self, booking_mcp):
        sid = await _to_guest_details(booking_mcp)
        await _call(
            booking_mcp, "enter_guest_details", session_id=sid,
            first_name="Ada", last_name="Lovelace",
        )

        text = await _call(booking_mcp, "go_back", session_id=sid)
        assert "Step 2 of 3" in text

        await _call(booking_mcp, "select_time", session_id=sid, time="19:00")
        text = await _call(booking_mcp, "booking_status", session_id=sid)
        assert "Guest: Ada Lovelace" in text


class TestNearbyTimes:
    async def test_closest_first(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        await _call(booking_mcp, "check_availability", session_id=sid)

        text = await _call(booking_mcp, "nearby_times", session_id=sid, time="7pm")

        assert text == "Nearby times: 7:00 PM, 6:00 PM, 8:30 PM"

    async def test_requires_availability(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        text = await _call(booking_mcp, "nearby_times", session_id=sid, time="7pm")
        assert text == "Check availability first."

    async def test_nothing_nearby(self, booking_mcp):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        await _call(booking_mcp, "check_availability", session_id=sid)
        text = await _call(booking_mcp, "nearby_times", session_id=sid, time="11am")
        assert "No available times" in text


class TestCancelAndNotices:
    async def test_cancel_removes_session(self, booking_mcp, app):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))

        text = await _call(booking_mcp, "cancel_booking", session_id=sid)

        assert text == f"Booking {sid} cancelled."
        assert sid not in app.sessions

    async def test_cancel_refused_while_busy(self, booking_mcp, app):
        sid = _session_id(await _call(booking_mcp, "start_booking", restaurant_id="rest-1"))
        app.sessions.get(sid).busy = True

        text = await _call(booking_mcp, "cancel_booking", session_id=sid)

        assert "is busy" in text
        assert sid in app.sessions

    async def test_dismiss_notice_sets_flag(self, booking_mcp, app):
        text = await _call(booking_mcp, "dismiss_notice", notice="large_party")
        assert "dismissed" in text
        assert await app.db.get_flag(NOTICE_FLAGS["large_party"]) == "1"

    async def test_dismiss_unknown_notice(self, booking_mcp):
        text = await _call(booking_mcp, "dismiss_notice", notice="cookies")
        assert "Unknown notice" in text
