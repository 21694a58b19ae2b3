"""
Pydantic schemas for product endpoints.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, field_serializer


class ProductPayload(BaseModel):
    """
    Create/update body. Every field is written as given; absent ones are stored as null.
    """

    title: str | None = None
    price: Decimal | None = None
    image: str | None = None
    category: str | None = None
    colors: list[str] | None = None
    quantity: int | None = None
    sizes: list[str] | None = None


class ProductResponse(BaseModel):
    id: int
    title: str | None = None
    price: Decimal | None = None
    image: str | None = None
    category: str | None = None
    colors: list[str] | None = None
    quantity: int | None = None
    sizes: list[str] | None = None

    @field_serializer("price")
    def _price_as_number(self, price: Decimal | None) -> float | None:
        return float(price) if price is not None else None


class MessageResponse(BaseModel):
    message: str
