"""Order, OrderItem, OrderStatusHistory, Cart and CartItem models.

Rules implemented:
- One supplier per order; a multi-supplier checkout produces one order per
  supplier.
- ``order_number`` is a random external identifier, separate from the
  UUIDv7 storage key.
- OrderItem snapshots prices at purchase time; ``total_price`` is always
  ``quantity * discounted_price`` (recalculated on save).
- ``subtotal`` and ``total_amount`` are recomputed server-side on every
  Order save: ``total = subtotal - discount + taxes + delivery_charge``.
- ``version`` backs optimistic concurrency control on status changes.
- Status history is append-only: rows refuse updates and deletes.
- Soft delete via ``deleted_at``; orders are never hard-deleted.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Sum
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    DeliveryStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.exceptions import HistoryIsAppendOnly
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

MONEY = {"max_digits": 12, "decimal_places": 2}


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` is generated on first save
    (format: ``ORD-YYYYMMDD-XXXXXXXXXXXX``).  The UUIDv7 ``id`` is used for
    internal references and API look-ups.
    """

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    customer = models.ForeignKey(
        "accounts.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    supplier = models.ForeignKey(
        "accounts.Supplier",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )

    # Financials (derived server-side)
    subtotal = models.DecimalField(**MONEY, default=Decimal("0.00"))
    coupon_code = models.CharField(max_length=50, blank=True, default="")
    discount_amount = models.DecimalField(**MONEY, default=Decimal("0.00"))
    taxes = models.DecimalField(**MONEY, default=Decimal("0.00"))
    delivery_charge = models.DecimalField(**MONEY, default=Decimal("0.00"))
    total_amount = models.DecimalField(**MONEY, default=Decimal("0.00"))

    # Payment
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    transaction_id = models.CharField(max_length=100, blank=True, default="")

    # Delivery assignment
    delivery_associate = models.ForeignKey(
        "accounts.DeliveryAssociate",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deliveries",
    )
    delivery_assigned_at = models.DateTimeField(null=True, blank=True)
    delivery_status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        blank=True,
        default="",
    )

    # Delivery address
    shipping_street = models.CharField(max_length=255)
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=100)
    shipping_phone = models.CharField(max_length=20)
    shipping_latitude = models.FloatField(null=True, blank=True)
    shipping_longitude = models.FloatField(null=True, blank=True)

    is_express_delivery = models.BooleanField(default=False)
    notes = models.TextField(blank=True, default="")
    invoice_url = models.CharField(max_length=500, blank=True, default="")
    estimated_delivery_date = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default="")
    return_reason = models.TextField(blank=True, default="")

    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["customer", "-created_at"], name="orders_customer_idx"),
            models.Index(fields=["supplier", "status"], name="orders_supplier_idx"),
            models.Index(
                fields=["shipping_latitude", "shipping_longitude"],
                name="orders_location_idx",
            ),
        ]

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate an external order number: ``ORD-YYYYMMDD-XXXXXXXXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(6).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Derived money fields
    # ------------------------------------------------------------------

    def recalculate_totals(self) -> None:
        """Recompute ``subtotal`` from persisted items and ``total_amount``.

        A new order has no persisted items yet; its ``subtotal`` is the one
        computed during assembly.
        """
        if not self._state.adding:
            aggregated = self.items.aggregate(total=Sum("total_price"))["total"]
            self.subtotal = aggregated if aggregated is not None else Decimal("0.00")
        self.total_amount = (
            Decimal(self.subtotal)
            - Decimal(self.discount_amount)
            + Decimal(self.taxes)
            + Decimal(self.delivery_charge)
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )

        self.recalculate_totals()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = list(
                set(update_fields) | {"subtotal", "total_amount"}
            )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an order.

    ``unit_price`` is the product price plus the variation surcharge at
    purchase time; ``discounted_price`` is what the customer actually pays
    per unit.  Both are snapshots and never follow later catalog changes.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(**MONEY)
    discounted_price = models.DecimalField(**MONEY)
    variation_name = models.CharField(max_length=100, blank=True, default="")
    variation_value = models.CharField(max_length=100, blank=True, default="")
    total_price = models.DecimalField(**MONEY, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.discounted_price is None:
            self.discounted_price = self.unit_price
        self.total_price = self.quantity * Decimal(self.discounted_price)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} ({self.total_price})"


class AppendOnlyQuerySet(models.QuerySet):
    """QuerySet refusing bulk updates and deletes."""

    def update(self, **kwargs: Any) -> int:
        raise HistoryIsAppendOnly("Status history entries cannot be updated.")

    def delete(self) -> tuple[int, dict[str, int]]:
        raise HistoryIsAppendOnly("Status history entries cannot be deleted.")


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``updated_by`` is the acting profile id and ``updated_by_model`` its
    role tag (``Customer``, ``Supplier``, ``Admin``, ``DeliveryAssociate``).
    Both are empty when the system recorded the entry.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    updated_by = models.UUIDField(null=True, blank=True)
    updated_by_model = models.CharField(max_length=20, blank=True, default="")
    note = models.TextField(blank=True, default="")

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise HistoryIsAppendOnly("Status history entries cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise HistoryIsAppendOnly("Status history entries cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.order_id} -> {self.status}"


class Cart(BaseModel):
    """Shopping cart of a customer; one per customer."""

    customer = models.OneToOneField(
        "accounts.Customer",
        on_delete=models.CASCADE,
        related_name="cart",
    )
    subtotal = models.DecimalField(**MONEY, default=Decimal("0.00"))

    class Meta:
        db_table = "carts"

    def __str__(self) -> str:
        return f"Cart({self.customer_id})"


class CartItem(BaseModel):
    cart = models.ForeignKey(
        "orders.Cart",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    variation_name = models.CharField(max_length=100, blank=True, default="")
    variation_value = models.CharField(max_length=100, blank=True, default="")
    price = models.DecimalField(**MONEY)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
