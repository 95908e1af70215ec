"""Product and ProductVariation models.

Rules implemented:
- SKU is unique, normalised to uppercase.
- Price is greater than zero; ``discounted_price`` (optional) never exceeds it.
- Stock quantities are non-negative and only decremented through
  ``ProductDjangoRepository.decrement_stock_atomic``.
- A variation is identified by its exact ``(name, value)`` pair per product.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Product(SoftDeleteModel):
    """Sellable item owned by exactly one supplier."""

    supplier = models.ForeignKey(
        "accounts.Supplier",
        on_delete=models.PROTECT,
        related_name="products",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    discounted_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
            models.Index(fields=["supplier"], name="products_supplier_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})
        if (
            self.discounted_price is not None
            and self.price is not None
            and self.discounted_price > self.price
        ):
            raise ValidationError(
                {"discounted_price": "Discounted price cannot exceed price."}
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product.created",
                product_id=str(self.id),
                supplier_id=str(self.supplier_id),
                sku=self.sku,
            )

    @property
    def effective_price(self) -> Decimal:
        """Price a customer pays per unit before any variation surcharge."""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.price

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class ProductVariation(BaseModel):
    """A purchasable option of a product, e.g. ``Size: XL``."""

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="variations",
    )
    name = models.CharField(max_length=100)
    value = models.CharField(max_length=100)
    additional_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "product_variations"
        ordering = ["name", "value"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "name", "value"],
                name="product_variation_unique",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="product_variation_stock_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id} {self.name}: {self.value}"
