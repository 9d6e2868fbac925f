"""Tests for tablebook.models.restaurant."""

from tablebook.models.restaurant import MenuItem, Restaurant, Review


class TestRestaurant:
    def test_parses_api_payload(self):
        r = Restaurant.model_validate({
            "id": 3,
            "name": "Sakura",
            "cuisineType": "Japanese",
            "priceRange": "$$",
            "averageRating": 4.7,
            "totalReviews": 88,
            "features": ["Outdoor seating"],
        })
        assert r.id == "3"
        assert r.cuisine_type == "Japanese"
        assert r.average_rating == 4.7
        assert r.features == ["Outdoor seating"]

    def test_optional_fields_default(self):
        r = Restaurant(id="1", name="Plain")
        assert r.address is None
        assert r.features == []


class TestReview:
    def test_parses_author_and_date(self):
        review = Review.model_validate({
            "id": 9,
            "rating": 4,
            "comment": "Good",
            "authorName": "Sam",
            "createdAt": "2026-01-05T12:00:00Z",
        })
        assert review.id == "9"
        assert review.author_name == "Sam"
        assert review.created_at is not None


class TestMenuItem:
    def test_price_is_float(self):
        item = MenuItem.model_validate({"id": "m", "name": "Ramen", "price": "12.5"})
        assert item.price == 12.5
