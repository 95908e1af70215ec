"""Django ORM implementation of the Product repository.

Missing or malformed ids yield ``None``; the service layer decides how to
translate a missing entity into a domain error.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from modules.catalog.models import Product, ProductVariation
from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a live product by primary key."""
        try:
            return (
                Product.objects.alive()
                .select_related("supplier")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        queryset = Product.objects.alive().select_related("supplier")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete a product by ID."""
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return Product.objects.filter(sku=sku.strip().upper()).first()

    def find_variation(
        self, product: Product, name: str, value: str
    ) -> Optional[ProductVariation]:
        return ProductVariation.objects.filter(
            product=product, name=name, value=value
        ).first()

    def decrement_stock_atomic(
        self,
        product_id: Any,
        variation: Optional[ProductVariation],
        quantity: int,
    ) -> bool:
        """``UPDATE ... SET stock = stock - q WHERE id = ? AND stock >= q``.

        Runs inside a savepoint: when the variation cannot be decremented the
        product decrement is rolled back as well.
        """
        now = timezone.now()
        log = logger.bind(product_id=str(product_id), quantity=quantity)

        with transaction.atomic():
            updated = Product.objects.filter(
                id=product_id, stock_quantity__gte=quantity
            ).update(stock_quantity=F("stock_quantity") - quantity, updated_at=now)
            if not updated:
                log.warning("product.stock_decrement_rejected")
                return False

            if variation is not None:
                updated = ProductVariation.objects.filter(
                    id=variation.id, stock_quantity__gte=quantity
                ).update(stock_quantity=F("stock_quantity") - quantity, updated_at=now)
                if not updated:
                    transaction.set_rollback(True)
                    log.warning(
                        "product.variation_stock_decrement_rejected",
                        variation_id=str(variation.id),
                    )
                    return False

        log.info("product.stock_decremented")
        return True
