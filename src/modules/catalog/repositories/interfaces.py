"""Product repository interface.

Extends ``IRepository[Product]`` with the look-ups order assembly needs
and the atomic stock decrement.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Product, ProductVariation


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        """List products with optional filters."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def find_variation(
        self, product: Product, name: str, value: str
    ) -> Optional[ProductVariation]:
        """Return the variation matching ``(name, value)`` exactly, if any."""

    @abstractmethod
    def decrement_stock_atomic(
        self,
        product_id: Any,
        variation: Optional[ProductVariation],
        quantity: int,
    ) -> bool:
        """Decrement stock only if enough remains; ``False`` when it does not.

        The product row (and the variation row, when given) are decremented
        together or not at all.
        """
