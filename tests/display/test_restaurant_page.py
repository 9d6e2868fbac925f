"""Tests for tablebook.display.restaurant."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tablebook.clients.cache import InMemoryCache
from tablebook.clients.resilience import NotFoundError, TransientAPIError
from tablebook.display.restaurant import RestaurantLoader, ReviewList
from tests.factories import make_menu_item, make_restaurant, make_review


def _client(restaurant=None, reviews=None, menu=None):
    client = MagicMock()
    client.get_restaurant = AsyncMock(return_value=restaurant or make_restaurant())
    client.get_reviews = AsyncMock(return_value=reviews if reviews is not None else [])
    client.get_menu = AsyncMock(return_value=menu if menu is not None else [])
    return client


class TestReviewList:
    def test_first_page_only(self):
        reviews = [make_review(rating=r) for r in (5, 4, 3, 2, 1)]
        page = ReviewList(reviews, page_size=3)

        assert page.visible == reviews[:3]
        assert page.hidden_count == 2
        assert page.has_more is True

    def test_show_more_reveals_remainder(self):
        reviews = [make_review() for _ in range(5)]
        page = ReviewList(reviews, page_size=3)

        revealed = page.show_more()

        assert revealed == reviews[3:]
        assert page.visible == reviews
        assert page.has_more is False
        assert page.show_more() == []

    def test_short_list(self):
        page = ReviewList([make_review()], page_size=3)
        assert page.has_more is False
        assert page.hidden_count == 0

    def test_average_rating(self):
        page = ReviewList([make_review(rating=5), make_review(rating=4), make_review(rating=4)])
        assert page.average_rating == 4.3

    def test_average_rating_empty(self):
        assert ReviewList([]).average_rating is None


class TestRestaurantLoader:
    async def test_load_all_sections(self):
        client = _client(reviews=[make_review()], menu=[make_menu_item()])
        page = await RestaurantLoader(client).load("rest-1")

        assert page.restaurant.name == "Test Bistro"
        assert len(page.reviews) == 1
        assert page.menu[0].name == "Soupe a l'oignon"
        assert page.errors == {}

    async def test_sections_fetched_concurrently(self):
        started: list[str] = []
        release = asyncio.Event()

        def _blocking(name, value):
            async def fetch(restaurant_id):
                started.append(name)
                await release.wait()
                return value
            return fetch

        client = MagicMock()
        client.get_restaurant = _blocking("details", make_restaurant())
        client.get_reviews = _blocking("reviews", [])
        client.get_menu = _blocking("menu", [])

        task = asyncio.create_task(RestaurantLoader(client).load("rest-1"))
        for _ in range(5):
            await asyncio.sleep(0)
        assert sorted(started) == ["details", "menu", "reviews"]
        release.set()
        await task

    async def test_details_and_reviews_are_cached(self):
        client = _client()
        loader = RestaurantLoader(client, InMemoryCache())

        await loader.load("rest-1")
        await loader.load("rest-1")

        assert client.get_restaurant.await_count == 1
        assert client.get_reviews.await_count == 1
        assert client.get_menu.await_count == 2

    async def test_reviews_failure_leaves_section_empty(self):
        client = _client(menu=[make_menu_item()])
        client.get_reviews.side_effect = TransientAPIError("down")

        page = await RestaurantLoader(client).load("rest-1")

        assert page.reviews == []
        assert "reviews" in page.errors
        assert len(page.menu) == 1

    async def test_menu_failure_leaves_section_empty(self):
        client = _client()
        client.get_menu.side_effect = NotFoundError("no menu")

        page = await RestaurantLoader(client).load("rest-1")

        assert page.menu == []
        assert "menu" in page.errors

    async def test_details_failure_raises(self):
        client = _client()
        client.get_restaurant.side_effect = NotFoundError("missing")

        with pytest.raises(NotFoundError):
            await RestaurantLoader(client).load("rest-1")

    async def test_unexpected_error_propagates(self):
        client = _client()
        client.get_menu.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await RestaurantLoader(client).load("rest-1")
