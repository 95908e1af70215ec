"""Event handlers for Orders domain events.

Handlers run inside the outbox relay, after the business transaction has
committed.  They only queue notifications.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.utils import timezone

from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.orders.events import (
    DeliveryAssigned,
    OrderCreated,
    OrderReturned,
    OrderStatusChanged,
)
from modules.orders.models import Order
from modules.orders.notifications import EMAIL, SMS, notify
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


def _load_order(order_id) -> Optional[Order]:
    order = (
        Order.objects.select_related("customer", "supplier", "delivery_associate")
        .filter(id=order_id)
        .first()
    )
    if order is None:
        logger.warning("order.event_for_missing_order", order_id=str(order_id))
    return order


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    """Confirms the order to the customer and alerts the supplier."""

    def handle(self, event: OrderCreated) -> None:
        order = _load_order(event.aggregate_id)
        if order is None:
            return
        payload = {
            "order_number": order.order_number,
            "total_amount": str(order.total_amount),
        }
        notify(EMAIL, order.customer.email, "order_confirmation", payload)
        notify(EMAIL, order.supplier.email, "new_order", payload)


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        order = _load_order(event.aggregate_id)
        if order is None:
            return
        notify(
            EMAIL,
            order.customer.email,
            "order_status_changed",
            {
                "order_number": event.order_number,
                "old_status": event.old_status,
                "new_status": event.new_status,
            },
        )


class OrderReturnedHandler(IEventHandler[OrderReturned]):
    """Tells the supplier and every admin why an order came back."""

    def __init__(self, account_repository: Optional[AccountDjangoRepository] = None) -> None:
        self._accounts = account_repository or AccountDjangoRepository()

    def handle(self, event: OrderReturned) -> None:
        order = _load_order(event.aggregate_id)
        if order is None:
            return
        payload = {
            "order_number": event.order_number,
            "customer_name": order.customer.name,
            "customer_email": order.customer.email,
            "reason": event.reason,
            "date": timezone.localtime(event.occurred_on).strftime("%Y-%m-%d %H:%M"),
        }
        recipients = [order.supplier.email]
        recipients += [admin.email for admin in self._accounts.list_admins()]
        for recipient in recipients:
            notify(EMAIL, recipient, "order_returned", payload)


class DeliveryAssignedHandler(IEventHandler[DeliveryAssigned]):
    def handle(self, event: DeliveryAssigned) -> None:
        order = _load_order(event.aggregate_id)
        if order is None or order.delivery_associate is None:
            return
        notify(
            SMS,
            order.delivery_associate.phone,
            "delivery_assigned",
            {"order_number": event.order_number, "city": order.shipping_city},
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_returned_handler = OrderReturnedHandler()
delivery_assigned_handler = DeliveryAssignedHandler()
