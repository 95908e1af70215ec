"""Product service layer (Use Cases)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction

from modules.catalog.exceptions import ProductAlreadyExists, ProductNotFound
from modules.catalog.models import Product, ProductVariation

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.actors import Actor
    from modules.catalog.dtos import CreateProductDTO
    from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def create_product(self, actor: Actor, dto: CreateProductDTO) -> Product:
        """Create a product owned by the calling supplier.

        Raises:
            ProductAlreadyExists: if the SKU is already taken.
        """
        log = logger.bind(sku=dto.sku, supplier_id=str(actor.id))

        if self._repo.get_by_sku(dto.sku):
            log.warning("product.duplicate_sku")
            raise ProductAlreadyExists(f"SKU '{dto.sku}' already registered.")

        product = Product(
            supplier_id=actor.id,
            sku=dto.sku,
            name=dto.name,
            price=dto.price,
            discounted_price=dto.discounted_price,
            description=dto.description,
            stock_quantity=dto.stock_quantity,
        )
        product = self._repo.save(product)
        ProductVariation.objects.bulk_create(
            [
                ProductVariation(
                    product=product,
                    name=variation.name,
                    value=variation.value,
                    additional_price=variation.additional_price,
                    stock_quantity=variation.stock_quantity,
                )
                for variation in dto.variations
            ]
        )
        log.info(
            "product.registered",
            product_id=str(product.id),
            variation_count=len(dto.variations),
        )
        return product

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._repo.list(filters).prefetch_related("variations")

    def get_product(self, id: str) -> Product:
        """Raises ``ProductNotFound`` if the product does not exist."""
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product
