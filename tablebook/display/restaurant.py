"""Restaurant page: details, reviews and menu loaded side by side."""

import asyncio
import logging

from pydantic import BaseModel

from tablebook.clients.cache import InMemoryCache, cache_key
from tablebook.clients.resilience import APIError
from tablebook.models.restaurant import MenuItem, Restaurant, Review

logger = logging.getLogger(__name__)


class ReviewList:
    """An already-fetched list of reviews shown a page at a time.

    ``show_more()`` reveals the rest of the list in one go; nothing is
    fetched incrementally.

    Args:
        reviews: All reviews for the restaurant, newest first.
        page_size: Number shown before "show more".
    """

    def __init__(self, reviews: list[Review], page_size: int = 3) -> None:
        self.reviews = list(reviews)
        self.page_size = page_size
        self.expanded = False

    @property
    def visible(self) -> list[Review]:
        if self.expanded:
            return list(self.reviews)
        return self.reviews[: self.page_size]

    @property
    def hidden_count(self) -> int:
        return len(self.reviews) - len(self.visible)

    @property
    def has_more(self) -> bool:
        return self.hidden_count > 0

    def show_more(self) -> list[Review]:
        """Reveal every remaining review. Returns the newly shown ones."""
        revealed = self.reviews[self.page_size:] if not self.expanded else []
        self.expanded = True
        return revealed

    @property
    def average_rating(self) -> float | None:
        if not self.reviews:
            return None
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 1)


class RestaurantPage(BaseModel):
    restaurant: Restaurant
    reviews: list[Review] = []
    menu: list[MenuItem] = []
    errors: dict[str, str] = {}


class RestaurantLoader:
    """Load restaurant details, reviews and menu concurrently.

    Details and reviews are cached; the menu is always fetched.

    Args:
        client: ReservationAPIClient (or anything with the same read methods).
        cache: Shared InMemoryCache.
    """

    def __init__(self, client: object, cache: InMemoryCache | None = None) -> None:
        self.client = client
        self.cache = cache or InMemoryCache()

    async def _cached(self, kind: str, restaurant_id: str, fetch) -> object:  # type: ignore[no-untyped-def]
        key = cache_key(kind, restaurant_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        value = await fetch(restaurant_id)
        self.cache.set(key, value)
        return value

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        return await self._cached(
            "details", restaurant_id, self.client.get_restaurant  # type: ignore[attr-defined]
        )

    async def get_reviews(self, restaurant_id: str) -> list[Review]:
        return await self._cached(
            "reviews", restaurant_id, self.client.get_reviews  # type: ignore[attr-defined]
        )

    async def load(self, restaurant_id: str) -> RestaurantPage:
        """Fetch the page's three sections in parallel.

        A failed reviews or menu fetch leaves that section empty and is
        noted in ``errors``.

        Raises:
            APIError: If the restaurant details cannot be loaded.
        """
        details, reviews, menu = await asyncio.gather(
            self.get_restaurant(restaurant_id),
            self.get_reviews(restaurant_id),
            self.client.get_menu(restaurant_id),  # type: ignore[attr-defined]
            return_exceptions=True,
        )
        if isinstance(details, BaseException):
            raise details

        errors: dict[str, str] = {}
        if isinstance(reviews, APIError):
            logger.warning("Reviews unavailable for %s: %s", restaurant_id, reviews)
            errors["reviews"] = "Reviews are unavailable right now."
            reviews = []
        elif isinstance(reviews, BaseException):
            raise reviews
        if isinstance(menu, APIError):
            logger.warning("Menu unavailable for %s: %s", restaurant_id, menu)
            errors["menu"] = "The menu is unavailable right now."
            menu = []
        elif isinstance(menu, BaseException):
            raise menu

        return RestaurantPage(
            restaurant=details, reviews=reviews, menu=menu, errors=errors
        )
