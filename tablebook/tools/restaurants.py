"""MCP tools showing a restaurant's page: details, reviews and menu."""

import logging

from fastmcp import FastMCP

from tablebook.display.restaurant import RestaurantPage, ReviewList
from tablebook.models.restaurant import Review
from tablebook.server import get_app
from tablebook.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)


def _format_review(review: Review) -> str:
    author = review.author_name or "Anonymous"
    text = f"- {review.rating}/5 by {author}"
    if review.comment:
        text += f": {review.comment}"
    return text


def format_page(page: RestaurantPage, page_size: int) -> str:
    r = page.restaurant
    lines = [r.name]
    facts = [f for f in (r.cuisine_type, r.price_range, r.city) if f]
    if facts:
        lines.append(" | ".join(facts))
    if r.average_rating is not None:
        count = f" ({r.total_reviews} reviews)" if r.total_reviews is not None else ""
        lines.append(f"Rating: {r.average_rating}/5{count}")
    if r.address:
        lines.append(f"Address: {r.address}")
    if r.phone:
        lines.append(f"Phone: {r.phone}")
    if r.description:
        lines.append(r.description)
    if r.features:
        lines.append("Features: " + ", ".join(r.features))

    reviews = ReviewList(page.reviews, page_size)
    if reviews.visible:
        lines.append("")
        lines.append("Reviews:")
        lines.extend(_format_review(rv) for rv in reviews.visible)
        if reviews.has_more:
            lines.append(f"({reviews.hidden_count} more; use restaurant_reviews with show_all)")

    if page.menu:
        lines.append("")
        lines.append("Menu:")
        for item in page.menu:
            price = f" ${item.price:.2f}" if item.price is not None else ""
            lines.append(f"- {item.name}{price}")

    for section, message in page.errors.items():
        lines.append(f"Note ({section}): {message}")
    return "\n".join(lines)


def register_restaurant_tools(mcp: FastMCP) -> None:
    """Register restaurant page tools on the MCP server."""

    @mcp.tool
    async def restaurant_details(restaurant_id: str) -> str:
        """Show a restaurant's details, top reviews and menu.

        Args:
            restaurant_id: The restaurant's id.

        Returns:
            The restaurant page as text.
        """
        app = get_app()

        async def _load() -> str:
            page = await app.restaurants.load(restaurant_id)
            return format_page(page, app.settings.reviews_page_size)

        return await safe_tool_wrapper(
            _load, context={"restaurant": f"restaurant {restaurant_id}"}
        )

    @mcp.tool
    async def restaurant_reviews(restaurant_id: str, show_all: bool = False) -> str:
        """Show a restaurant's reviews.

        Args:
            restaurant_id: The restaurant's id.
            show_all: Show every review instead of the first few.

        Returns:
            The average rating and the reviews.
        """
        app = get_app()

        async def _reviews() -> str:
            reviews = ReviewList(
                await app.restaurants.get_reviews(restaurant_id),
                app.settings.reviews_page_size,
            )
            if not reviews.reviews:
                return "No reviews yet."
            if show_all:
                reviews.show_more()
            lines = [f"Average rating: {reviews.average_rating}/5 from {len(reviews.reviews)} reviews"]
            lines.extend(_format_review(rv) for rv in reviews.visible)
            if reviews.has_more:
                lines.append(f"({reviews.hidden_count} more; call again with show_all=True)")
            return "\n".join(lines)

        return await safe_tool_wrapper(
            _reviews, context={"restaurant": f"restaurant {restaurant_id}"}
        )
