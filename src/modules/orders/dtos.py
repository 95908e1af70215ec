"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are the
contracts between the API layer (DRF serializers) and the services.  DTOs
are immutable (``frozen=True``).

- ``DeliveryAddressDTO``: where an order ships; every text field required.
- ``VariationSelectionDTO``: the ``(name, value)`` a customer picked.
- ``CreateOrderItemDTO``: input for a single cart line.
- ``CreateOrderDTO``: input for a checkout (one order per supplier).
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import PaymentMethod

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class DeliveryAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    @field_validator("street", "city", "state", "postal_code", "country", "phone")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("This field is required.")
        return v.strip()

    @model_validator(mode="after")
    def coordinates_come_in_pairs(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together.")
        return self


class VariationSelectionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class CreateOrderItemDTO(BaseModel):
    """A cart line; prices are resolved from the catalog, never the client."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    variation: Optional[VariationSelectionDTO] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``items`` contains at least one line.
    - no two lines repeat the same product and variation.
    """

    model_config = ConfigDict(frozen=True)

    items: List[CreateOrderItemDTO]
    delivery_address: DeliveryAddressDTO
    payment_method: PaymentMethod
    coupon_code: Optional[str] = None
    is_express_delivery: bool = False
    notes: str = ""
    clear_cart: bool = False

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_lines(self):
        keys = [
            (
                item.product_id,
                (item.variation.name, item.variation.value) if item.variation else None,
            )
            for item in self.items
        ]
        if len(keys) != len(set(keys)):
            raise ValueError(
                "Duplicate product/variation lines are not allowed in the same order."
            )
        return self
