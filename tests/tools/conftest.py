from unittest.mock import AsyncMock, MagicMock

import pytest

from tablebook.config import Settings
from tablebook.context import AppContext
from tests.factories import TODAY, make_reservation, make_restaurant, make_slot


@pytest.fixture
def api():
    """Reservation API client double with a small happy-path data set."""
    client = MagicMock()
    client.get_restaurant = AsyncMock(return_value=make_restaurant())
    client.get_reviews = AsyncMock(return_value=[])
    client.get_menu = AsyncMock(return_value=[])
    client.get_availability = AsyncMock(
        return_value=[make_slot("20:30"), make_slot("18:00"), make_slot("19:00")]
    )
    client.create_reservation = AsyncMock(
        return_value=make_reservation(id="res-new", confirmation_code="ABC123")
    )
    client.list_reservations = AsyncMock(return_value=[])
    client.update_reservation_status = AsyncMock(return_value=None)
    return client


@pytest.fixture
def app(db, api):
    return AppContext(Settings(_env_file=None), api, db, today=lambda: TODAY)
