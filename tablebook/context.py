"""Explicit application context shared by the MCP tools.

Everything a tool needs (API client, local store, wizard sessions) hangs off
one AppContext built at server start-up, so wizards and services receive
their collaborators as arguments and can be built in isolation in tests.
"""

from collections.abc import Callable
from datetime import date

from tablebook.clients.cache import InMemoryCache
from tablebook.clients.reservation_api import ReservationAPIClient
from tablebook.config import Settings
from tablebook.display.reservations import ReservationManager
from tablebook.display.restaurant import RestaurantLoader
from tablebook.storage.database import DatabaseManager
from tablebook.wizard.availability import AvailabilityProvider
from tablebook.wizard.sessions import WizardSessionRegistry
from tablebook.wizard.state_machine import BookingWizard
from tablebook.wizard.submission import ReservationSubmitter
from tablebook.wizard.validation import BookingLimits


class AppContext:
    """Wire the services for one server lifetime.

    Args:
        settings: Loaded Settings.
        client: Reservation API client.
        db: Initialised local store.
        today: Clock returning the current date.
    """

    def __init__(
        self,
        settings: Settings,
        client: ReservationAPIClient,
        db: DatabaseManager,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings
        self.client = client
        self.db = db
        self.today = today

        self.limits = BookingLimits.from_settings(settings)
        self.cache = InMemoryCache(ttl_seconds=settings.restaurant_cache_ttl)
        self.provider = AvailabilityProvider(client, self.limits, today)
        self.submitter = ReservationSubmitter(client, self.limits, store=db, today=today)
        self.restaurants = RestaurantLoader(client, self.cache)
        self.reservations = ReservationManager(client, store=db)
        self.sessions = WizardSessionRegistry(self.new_wizard)

    @classmethod
    def from_settings(cls, settings: Settings, db: DatabaseManager) -> "AppContext":
        client = ReservationAPIClient(
            base_url=settings.api_base_url,
            api_token=settings.api_token,
            timeout=settings.request_timeout,
        )
        return cls(settings, client, db)

    def new_wizard(self) -> BookingWizard:
        return BookingWizard(self.provider, self.submitter, self.limits, self.today)
