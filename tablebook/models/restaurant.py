from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Restaurant(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    name: str
    description: str | None = None
    cuisine_type: str | None = None
    price_range: str | None = None
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    website: str | None = None
    average_rating: float | None = None
    total_reviews: int | None = None
    features: list[str] = []
    operating_hours: dict | None = None


class Review(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str
    rating: int
    comment: str = ""
    author_name: str | None = None
    created_at: datetime | None = None


class MenuItem(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str
    name: str
    category: str | None = None
    price: float | None = None
    description: str | None = None
