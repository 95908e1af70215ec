"""Catalog DTOs for the Service Layer.

Immutable Pydantic v2 contracts between the API layer and ``ProductService``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class CreateVariationDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    additional_price: Decimal = Decimal("0.00")
    stock_quantity: int = 0

    @field_validator("additional_price")
    @classmethod
    def additional_price_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Additional price cannot be negative.")
        return v

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock quantity cannot be negative.")
        return v


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation by a supplier.

    Validates:
    - ``sku`` is non-empty (normalised to uppercase).
    - ``price`` is greater than zero; ``discounted_price`` does not exceed it.
    - ``stock_quantity`` is non-negative.
    - variation ``(name, value)`` pairs are unique.
    """

    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    price: Decimal
    discounted_price: Optional[Decimal] = None
    description: str = ""
    stock_quantity: int = 0
    variations: List[CreateVariationDTO] = []

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock quantity cannot be negative.")
        return v

    @field_validator("sku")
    @classmethod
    def sku_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("SKU must not be empty.")
        return v.strip().upper()

    @model_validator(mode="after")
    def check_discount_and_variations(self):
        if self.discounted_price is not None and not (
            0 < self.discounted_price <= self.price
        ):
            raise ValueError("Discounted price must be positive and not exceed price.")
        pairs = [(v.name, v.value) for v in self.variations]
        if len(pairs) != len(set(pairs)):
            raise ValueError("Duplicate variations are not allowed.")
        return self
