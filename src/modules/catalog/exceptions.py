"""Catalog domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import Conflict, NotFound


class ProductNotFound(NotFound):
    """The product does not exist or has been soft-deleted."""

    default_code = "product_not_found"
    default_detail = "Product not found."


class ProductAlreadyExists(Conflict):
    """A product with the same SKU already exists."""

    default_code = "product_already_exists"
