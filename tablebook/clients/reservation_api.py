"""Reservation API client: availability, reservation creation, listings, restaurant data."""

import logging

import httpx
from pydantic import ValidationError

from tablebook.clients.resilience import (
    CircuitBreaker,
    SchemaChangeError,
    TransientAPIError,
    classify_response,
    reservation_api_breaker,
    resilient_request,
    validate_availability_schema,
    validate_envelope_schema,
    validate_reservation_schema,
)
from tablebook.models.booking import AvailabilitySlot, CreateReservationRequest
from tablebook.models.enums import ReservationStatus
from tablebook.models.reservation import Reservation
from tablebook.models.restaurant import MenuItem, Restaurant, Review

logger = logging.getLogger(__name__)


def normalise_slot_time(value: str) -> str:
    """Reduce ``"2026-02-14 19:30:00"`` / ``"19:30:00"`` to ``"19:30"``."""
    time_str = value.strip()
    if " " in time_str:
        time_str = time_str.split(" ")[-1]
    if "T" in time_str:
        time_str = time_str.split("T")[-1]
    parts = time_str.split(":")
    if len(parts) >= 2 and parts[0].isdigit():
        return f"{int(parts[0]):02d}:{parts[1][:2]}"
    return time_str


def parse_slot(raw: object) -> AvailabilitySlot:
    """Build an AvailabilitySlot from either wire shape.

    ``"19:00"`` (from ``availableSlots``) is an available slot with unknown
    capacity; ``{"time", "available", "tables"}`` (from ``timeSlots``)
    carries its own flags.

    Raises:
        SchemaChangeError: If the slot has no usable time.
    """
    if isinstance(raw, str):
        return AvailabilitySlot(time=normalise_slot_time(raw))
    if not isinstance(raw, dict) or not raw.get("time"):
        raise SchemaChangeError(f"Unrecognised availability slot: {raw!r}")

    seats = raw.get("seatsAvailable", raw.get("tables"))
    try:
        seats_available = int(seats) if seats is not None else None
    except (TypeError, ValueError) as exc:
        raise SchemaChangeError(f"Unrecognised seat count: {seats!r}") from exc
    return AvailabilitySlot(
        time=normalise_slot_time(str(raw["time"])),
        available=bool(raw.get("available", True)),
        seats_available=seats_available,
    )


class ReservationAPIClient:
    """Async client for the reservation/availability API.

    Args:
        base_url: API root, e.g. ``http://localhost:3001``.
        api_token: Optional bearer token.
        timeout: Per-request timeout in seconds.
        breaker: Circuit breaker guarding every call.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 30.0,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.breaker = breaker or reservation_api_breaker

    def _headers(self) -> dict[str, str]:
        """Build request headers."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _send(self, method: str, path: str, **kwargs: object) -> object:
        """Perform one request and return the decoded JSON body.

        Raises:
            TransientAPIError: On network failure or 429/5xx.
            PermanentAPIError: (or a subclass) on other non-2xx statuses.
            SchemaChangeError: If the body is not JSON.
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, url, headers=self._headers(), **kwargs
                )
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransientAPIError(f"Network error: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "%s %s failed (HTTP %d): %s",
                method, path, response.status_code, response.text,
            )
        classify_response(response)

        try:
            return response.json()
        except ValueError as exc:
            raise SchemaChangeError(f"Non-JSON response from {path}") from exc

    async def _call(self, method: str, path: str, **kwargs: object) -> object:
        """Send a request through the circuit breaker."""
        return await self.breaker.call_async(self._send(method, path, **kwargs))

    # ── Availability ───────────────────────────────────────────────────

    async def get_availability(
        self,
        restaurant_id: str,
        date: str,
        party_size: int,
    ) -> list[AvailabilitySlot]:
        """Fetch bookable slots for one (restaurant, date, party size).

        Args:
            restaurant_id: Restaurant identifier.
            date: Date string YYYY-MM-DD.
            party_size: Number of diners.

        Returns:
            Slots in the order the API sent them.
        """
        data = await self._call(
            "GET",
            "/api/bookings/availability",
            params={
                "restaurantId": restaurant_id,
                "date": date,
                "partySize": party_size,
            },
        )
        return [parse_slot(raw) for raw in validate_availability_schema(data)]

    # ── Reservations ───────────────────────────────────────────────────

    async def create_reservation(self, request: CreateReservationRequest) -> Reservation:
        """Create a reservation. Never retried.

        Raises:
            ConflictError: The slot was taken in the meantime.
            ValidationAPIError: The API rejected the guest or slot fields.
        """
        data = await self._call(
            "POST", "/api/bookings", json=request.to_payload()
        )
        payload = validate_reservation_schema(data)
        # Fields the API leaves out are taken from what was sent
        sent = request.to_payload()
        try:
            reservation = Reservation.model_validate({**sent, **payload})
        except ValidationError as exc:
            logger.warning(
                "Reservation %s created but the response did not parse: %s",
                payload["id"], exc,
            )
            reservation = Reservation.model_validate(
                {**sent, "id": payload["id"], "confirmationCode": payload["confirmationCode"]}
            )
        logger.info(
            "Reservation %s created (confirmation %s)",
            reservation.id, reservation.confirmation_code,
        )
        return reservation

    async def list_reservations(
        self,
        status: ReservationStatus | None = None,
        date: str | None = None,
        restaurant_id: str | None = None,
    ) -> list[Reservation]:
        """List reservations visible to the caller."""
        params: dict[str, str] = {}
        if status:
            params["status"] = status.value
        if date:
            params["date"] = date
        if restaurant_id:
            params["restaurantId"] = restaurant_id

        data = await self._call("GET", "/api/bookings", params=params)
        payload = validate_envelope_schema(data, "reservation list")
        if not isinstance(payload, list):
            raise SchemaChangeError("Expected list payload for reservation list")
        reservations = []
        for raw in payload:
            try:
                reservations.append(Reservation.model_validate(raw))
            except ValidationError as exc:
                ref = raw.get("id") if isinstance(raw, dict) else raw
                logger.warning("Skipping unreadable reservation %s: %s", ref, exc)
        return reservations

    async def update_reservation_status(
        self, reservation_id: str, status: ReservationStatus
    ) -> Reservation | None:
        """Set a reservation's status. Returns the updated reservation when echoed."""
        data = await self._call(
            "PATCH",
            f"/api/bookings/{reservation_id}/status",
            json={"status": status.value},
        )
        payload = data.get("data") if isinstance(data, dict) else None
        if isinstance(payload, dict) and {"id", "confirmationCode"} <= payload.keys():
            return Reservation.model_validate(payload)
        return None

    # ── Restaurant data (read-only, retried) ───────────────────────────

    @resilient_request
    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        data = await self._call("GET", f"/api/restaurants/{restaurant_id}")
        payload = validate_envelope_schema(data, "restaurant")
        return Restaurant.model_validate(payload)

    @resilient_request
    async def get_reviews(self, restaurant_id: str) -> list[Review]:
        data = await self._call("GET", f"/api/restaurants/{restaurant_id}/reviews")
        payload = validate_envelope_schema(data, "reviews")
        if isinstance(payload, dict):
            payload = payload.get("reviews", [])
        return [Review.model_validate(r) for r in payload]

    @resilient_request
    async def get_menu(self, restaurant_id: str) -> list[MenuItem]:
        data = await self._call("GET", f"/api/restaurants/{restaurant_id}/menu")
        payload = validate_envelope_schema(data, "menu")
        if isinstance(payload, dict):
            payload = payload.get("items", [])
        return [MenuItem.model_validate(m) for m in payload]
