"""Order repository interfaces.

``IOrderRepository`` extends ``IRepository[Order]`` with the methods the
order services need: atomic creation with items, row locking, the
optimistic version claim and the conditional single-row updates used for
self-assignment and invoice persistence.

The service layer depends exclusively on these contracts (DIP).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional
from uuid import UUID

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusHistory
    records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` carries the order columns plus ``items`` (list of dicts with
        ``product_id``, ``quantity``, ``unit_price``, ``discounted_price``,
        ``variation_name``, ``variation_value``) and optionally
        ``initial_history`` (``updated_by``, ``updated_by_model``, ``note``).
        """

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Order]":
        """List live orders with optional filters."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock."""

    @abstractmethod
    def claim_version(self, order: Order) -> bool:
        """Bump ``version`` only if it still equals ``order.version``."""

    @abstractmethod
    def assign_if_unassigned(
        self,
        order_id: UUID,
        associate_id: UUID,
        statuses: Iterable[str],
        assigned_at: datetime,
    ) -> bool:
        """Attach an associate in one conditional UPDATE; ``False`` if none matched."""

    @abstractmethod
    def set_invoice_url_if_empty(self, order_id: UUID, url: str) -> bool:
        """Persist ``invoice_url`` only while it is still empty."""

    @abstractmethod
    def available_for_delivery(self) -> "models.QuerySet[Order]":
        """Unassigned orders a delivery associate may pick up."""

    @abstractmethod
    def status_counts(self, supplier_id: UUID) -> Dict[str, int]:
        """Order counts per status for one supplier."""


class ICartRepository(ABC):
    """Repository contract for customer carts."""

    @abstractmethod
    def clear(self, customer_id: UUID) -> None:
        """Delete every cart item and reset the subtotal."""
