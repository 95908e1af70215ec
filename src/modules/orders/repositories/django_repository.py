"""Django ORM implementation of the Order and Cart repositories.

All write operations run inside ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems + history) is persisted atomically.

Domain events collected on the aggregate are written to the outbox table
by ``save()`` in the same transaction; the relay task is kicked once the
transaction commits.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Count, F, Q

from modules.core.models import OutboxEvent
from modules.orders.constants import ASSIGNABLE_STATUSES, OrderStatus
from modules.orders.models import Cart, CartItem, Order, OrderItem
from modules.orders.repositories.interfaces import ICartRepository, IOrderRepository

logger = structlog.get_logger(__name__)

_ORDER_RELATIONS = ("customer", "supplier", "delivery_associate")
_ORDER_PREFETCH = ("items__product", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        items = data.pop("items")
        initial_history = data.pop("initial_history", None)

        order = Order(**data)
        if initial_history is not None:
            order._pending_history = {"status": order.status, **initial_history}
        order.save()

        for item_data in items:
            OrderItem(order=order, **item_data).save()

        logger.bind(order_id=str(order.id), item_count=len(items)).info(
            "order.persisted"
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve a live order with eager-loaded relations.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return (
                Order.objects.alive()
                .select_related(*_ORDER_RELATIONS)
                .prefetch_related(*_ORDER_PREFETCH)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Order]":
        queryset = Order.objects.alive().select_related(*_ORDER_RELATIONS)
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        ``of=("self",)`` keeps the lock on the order row only; the nullable
        associate join is not locked.
        """
        try:
            return (
                Order.objects.alive()
                .select_for_update(of=("self",))
                .select_related(*_ORDER_RELATIONS)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def available_for_delivery(self) -> "models.QuerySet[Order]":
        return self.list(
            {"status__in": ASSIGNABLE_STATUSES, "delivery_associate__isnull": True}
        )

    def status_counts(self, supplier_id: UUID) -> Dict[str, int]:
        return Order.objects.alive().filter(supplier_id=supplier_id).aggregate(
            all=Count("id"),
            pending=Count("id", filter=Q(status=OrderStatus.PENDING)),
            processing=Count("id", filter=Q(status=OrderStatus.PROCESSING)),
            out_for_delivery=Count("id", filter=Q(status=OrderStatus.OUT_FOR_DELIVERY)),
            delivered=Count("id", filter=Q(status=OrderStatus.DELIVERED)),
        )

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and write its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic="orders",
            )
        entity.clear_domain_events()
        if events:
            transaction.on_commit(_kick_outbox_relay, robust=True)

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete an order by ID."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Conditional updates
    # ------------------------------------------------------------------

    def claim_version(self, order: Order) -> bool:
        claimed = Order.objects.filter(id=order.id, version=order.version).update(
            version=F("version") + 1
        )
        if claimed:
            order.version += 1
        return bool(claimed)

    def assign_if_unassigned(
        self,
        order_id: UUID,
        associate_id: UUID,
        statuses: Iterable[str],
        assigned_at: datetime,
    ) -> bool:
        try:
            updated = Order.objects.filter(
                id=order_id,
                deleted_at__isnull=True,
                delivery_associate__isnull=True,
                status__in=list(statuses),
            ).update(
                delivery_associate_id=associate_id,
                delivery_assigned_at=assigned_at,
                delivery_status="assigned",
                version=F("version") + 1,
                updated_at=assigned_at,
            )
        except (ValueError, ValidationError):
            return False
        return bool(updated)

    def set_invoice_url_if_empty(self, order_id: UUID, url: str) -> bool:
        updated = Order.objects.filter(id=order_id, invoice_url="").update(
            invoice_url=url
        )
        return bool(updated)


class CartDjangoRepository(ICartRepository):
    """Concrete Cart repository backed by Django ORM."""

    @transaction.atomic
    def clear(self, customer_id: UUID) -> None:
        cart = Cart.objects.filter(customer_id=customer_id).first()
        if cart is None:
            return
        removed, _ = CartItem.objects.filter(cart=cart).delete()
        cart.subtotal = Decimal("0.00")
        cart.save(update_fields=["subtotal"])
        logger.info("cart.cleared", customer_id=str(customer_id), removed=removed)


def _kick_outbox_relay() -> None:
    from modules.core.tasks import relay_outbox_events

    relay_outbox_events.delay()


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
