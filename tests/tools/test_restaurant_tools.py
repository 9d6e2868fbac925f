"""Tests for tablebook.tools.restaurants."""

from unittest.mock import patch

import pytest
from fastmcp import Client, FastMCP

from tablebook.clients.resilience import NotFoundError, TransientAPIError
from tablebook.display.restaurant import RestaurantPage
from tablebook.tools.restaurants import format_page, register_restaurant_tools
from tests.factories import make_menu_item, make_restaurant, make_review


@pytest.fixture
def restaurant_mcp(app):
    test_mcp = FastMCP("test")
    with patch("tablebook.tools.restaurants.get_app", return_value=app):
        register_restaurant_tools(test_mcp)
        yield test_mcp


async def _call(mcp, tool, **args) -> str:
    async with Client(mcp) as client:
        result = await client.call_tool(tool, args)
    return result.content[0].text


def _reviews(n: int) -> list:
    return [make_review(author_name=f"Guest {i}", rating=4 if i % 2 else 5) for i in range(n)]


class TestFormatPage:
    def test_header_facts(self):
        page = RestaurantPage(restaurant=make_restaurant())
        text = format_page(page, 3)

        assert text.splitlines()[0] == "Test Bistro"
        assert "French | $$$ | New York" in text
        assert "Rating: 4.5/5 (120 reviews)" in text
        assert "Address: 1 Test St" in text
        assert "Reviews:" not in text
        assert "Menu:" not in text

    def test_first_page_of_reviews(self):
        page = RestaurantPage(restaurant=make_restaurant(), reviews=_reviews(5))
        text = format_page(page, 3)

        assert "Guest 2" in text
        assert "Guest 3" not in text
        assert "(2 more;" in text

    def test_section_errors_noted(self):
        page = RestaurantPage(
            restaurant=make_restaurant(),
            errors={"menu": "The menu is unavailable right now."},
        )
        assert "Note (menu): The menu is unavailable right now." in format_page(page, 3)


class TestRestaurantDetails:
    async def test_full_page(self, restaurant_mcp, api):
        api.get_reviews.return_value = _reviews(2)
        api.get_menu.return_value = [make_menu_item()]

        text = await _call(restaurant_mcp, "restaurant_details", restaurant_id="rest-1")

        assert "Test Bistro" in text
        assert "- 5/5 by Guest 0: Lovely evening" in text
        assert "- Soupe a l'oignon $14.00" in text

    async def test_menu_failure_keeps_page(self, restaurant_mcp, api):
        api.get_menu.side_effect = TransientAPIError("503")

        text = await _call(restaurant_mcp, "restaurant_details", restaurant_id="rest-1")

        assert "Test Bistro" in text
        assert "Note (menu)" in text

    async def test_unknown_restaurant(self, restaurant_mcp, api):
        api.get_restaurant.side_effect = NotFoundError("404")

        text = await _call(restaurant_mcp, "restaurant_details", restaurant_id="rest-x")

        assert text == "Could not find restaurant rest-x."

    async def test_details_are_cached(self, restaurant_mcp, api):
        await _call(restaurant_mcp, "restaurant_details", restaurant_id="rest-1")
        await _call(restaurant_mcp, "restaurant_details", restaurant_id="rest-1")

        assert api.get_restaurant.await_count == 1
        assert api.get_menu.await_count == 2


class TestRestaurantReviews:
    async def test_first_page_with_average(self, restaurant_mcp, api):
        api.get_reviews.return_value = _reviews(5)

        text = await _call(restaurant_mcp, "restaurant_reviews", restaurant_id="rest-1")

        assert text.startswith("Average rating: 4.6/5 from 5 reviews")
        assert "Guest 3" not in text
        assert "2 more" in text

    async def test_show_all(self, restaurant_mcp, api):
        api.get_reviews.return_value = _reviews(5)

        text = await _call(
            restaurant_mcp, "restaurant_reviews", restaurant_id="rest-1", show_all=True
        )

        assert "Guest 4" in text
        assert "more" not in text

    async def test_no_reviews(self, restaurant_mcp):
        text = await _call(restaurant_mcp, "restaurant_reviews", restaurant_id="rest-1")
        assert text == "No reviews yet."
