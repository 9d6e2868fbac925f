"""Availability lookups: query validation, chronological ordering, stale-result tracking."""

import logging
from collections.abc import Callable
from datetime import date

from tablebook.clients.resilience import APIError
from tablebook.models.booking import AvailabilityResult, AvailabilitySlot
from tablebook.wizard.errors import InvalidQueryError
from tablebook.wizard.validation import BookingLimits, validate_query

logger = logging.getLogger(__name__)

AVAILABILITY_FAILED_MESSAGE = "Failed to check availability. Please try again."


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` string; unparseable sorts last."""
    try:
        hours, minutes = value.split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except ValueError:
        return 24 * 60


def sort_slots(slots: list[AvailabilitySlot]) -> tuple[AvailabilitySlot, ...]:
    return tuple(sorted(slots, key=lambda s: time_to_minutes(s.time)))


def nearby_slots(
    slots: tuple[AvailabilitySlot, ...] | list[AvailabilitySlot],
    target: str,
    window_minutes: int = 90,
    limit: int = 5,
) -> list[AvailabilitySlot]:
    """Available slots within *window_minutes* of *target*, closest first."""
    target_min = time_to_minutes(target)
    candidates = [
        s for s in slots
        if s.available and abs(time_to_minutes(s.time) - target_min) <= window_minutes
    ]
    candidates.sort(key=lambda s: abs(time_to_minutes(s.time) - target_min))
    return candidates[:limit]


class AvailabilityProvider:
    """Fetch bookable slots for a restaurant.

    Args:
        client: Object exposing ``get_availability(restaurant_id, date, party_size)``.
        limits: Bookable window and party-size range.
        today: Clock returning the current date.
    """

    def __init__(
        self,
        client: object,
        limits: BookingLimits | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.client = client
        self.limits = limits or BookingLimits()
        self.today = today

    async def get_available_slots(
        self,
        restaurant_id: str,
        day: str,
        party_size: int,
        generation: int = 0,
    ) -> AvailabilityResult:
        """Return a chronological snapshot of slots for one query.

        Network, server and schema failures produce an empty result with
        ``error=True`` rather than raising.

        Raises:
            InvalidQueryError: If the date or party size is out of range.
        """
        errors = validate_query(day, party_size, self.limits, self.today())
        if errors:
            raise InvalidQueryError(errors)

        try:
            slots = await self.client.get_availability(  # type: ignore[attr-defined]
                restaurant_id, day, party_size
            )
        except APIError as exc:
            logger.warning(
                "Availability check failed for %s on %s (party %d): %s",
                restaurant_id, day, party_size, exc,
            )
            return AvailabilityResult(
                restaurant_id=restaurant_id,
                date=day,
                party_size=party_size,
                error=True,
                message=AVAILABILITY_FAILED_MESSAGE,
                generation=generation,
            )

        return AvailabilityResult(
            restaurant_id=restaurant_id,
            date=day,
            party_size=party_size,
            slots=sort_slots(slots),
            generation=generation,
        )


class SlotQueryTracker:
    """Generation tokens for availability requests.

    Every request takes the next token; only the response carrying the most
    recently issued token may be applied. Changing the query (date or party
    size) bumps the generation so in-flight responses become stale.
    """

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def invalidate(self) -> None:
        self._generation += 1

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def fetch(
        self,
        provider: AvailabilityProvider,
        restaurant_id: str,
        day: str,
        party_size: int,
    ) -> AvailabilityResult | None:
        """Run a query and return its result, or ``None`` if it went stale."""
        generation = self.next_generation()
        result = await provider.get_available_slots(
            restaurant_id, day, party_size, generation=generation
        )
        if not self.is_current(generation):
            logger.info(
                "Discarding stale availability for %s on %s (generation %d < %d)",
                restaurant_id, day, generation, self._generation,
            )
            return None
        return result
