"""Unit tests for Orders event handlers and the in-memory bus."""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from django.core import mail

from modules.orders import handlers
from modules.orders.events import (
    DeliveryAssigned,
    OrderCreated,
    OrderReturned,
    OrderStatusChanged,
)
from modules.orders.handlers import (
    DeliveryAssignedHandler,
    OrderCreatedHandler,
    OrderReturnedHandler,
    OrderStatusChangedHandler,
)
from modules.orders.models import Order
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def _subjects():
    return sorted(message.subject for message in mail.outbox)


class TestOrderCreatedHandler:
    def test_confirms_to_customer_and_alerts_supplier(self, order, customer, supplier):
        OrderCreatedHandler().handle(
            OrderCreated(aggregate_id=order.id, order_number=order.order_number)
        )

        recipients = {message.to[0]: message.subject for message in mail.outbox}
        assert recipients == {
            customer.email: "Order Confirmation",
            supplier.email: "New Order Received",
        }
        assert order.order_number in mail.outbox[0].body

    def test_missing_order_is_ignored(self):
        OrderCreatedHandler().handle(OrderCreated(aggregate_id=uuid4()))
        assert mail.outbox == []


class TestOrderStatusChangedHandler:
    def test_emails_customer(self, order, customer):
        OrderStatusChangedHandler().handle(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                old_status="pending",
                new_status="processing",
                changed_by="Admin",
            )
        )

        (message,) = mail.outbox
        assert message.to == [customer.email]
        assert message.subject == f"Order {order.order_number} is now processing"


class TestOrderReturnedHandler:
    def test_emails_supplier_and_every_active_admin(self, order, supplier, admin, make_profile):
        from modules.accounts.models import Admin

        inactive = make_profile(Admin, is_active=False)

        OrderReturnedHandler().handle(
            OrderReturned(
                aggregate_id=order.id,
                order_number=order.order_number,
                reason="Wrong size",
            )
        )

        recipients = sorted(message.to[0] for message in mail.outbox)
        assert recipients == sorted([supplier.email, admin.email])
        assert inactive.email not in recipients
        assert all("Wrong size" in message.body for message in mail.outbox)
        assert _subjects() == [f"Order #{order.order_number} Return Requested"] * 2


class TestDeliveryAssignedHandler:
    def test_texts_the_associate(self, order, associate):
        Order.objects.filter(id=order.id).update(delivery_associate=associate)

        with patch.object(handlers, "notify") as notify:
            DeliveryAssignedHandler().handle(
                DeliveryAssigned(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    associate_id=str(associate.id),
                )
            )

        notify.assert_called_once_with(
            "sms",
            associate.phone,
            "delivery_assigned",
            {"order_number": order.order_number, "city": "Bengaluru"},
        )

    def test_unassigned_order_is_ignored(self, order):
        with patch.object(handlers, "notify") as notify:
            DeliveryAssignedHandler().handle(DeliveryAssigned(aggregate_id=order.id))
        notify.assert_not_called()


class TestInMemoryEventBus:
    def test_routes_events_by_type(self):
        bus = InMemoryEventBus()
        handled = []

        class CapturingHandler:
            def handle(self, event) -> None:
                handled.append(event)

        bus.subscribe(OrderCreated, CapturingHandler())
        created = OrderCreated(aggregate_id=uuid4())
        bus.publish(created)
        bus.publish(OrderStatusChanged(aggregate_id=uuid4()))

        assert handled == [created]

    def test_subscribing_twice_runs_handler_once(self):
        bus = InMemoryEventBus()
        handled = []

        class CapturingHandler:
            def handle(self, event) -> None:
                handled.append(event)

        handler = CapturingHandler()
        bus.subscribe(OrderCreated, handler)
        bus.subscribe(OrderCreated, handler)
        bus.publish(OrderCreated(aggregate_id=uuid4()))

        assert len(handled) == 1

    def test_handler_error_propagates(self):
        bus = InMemoryEventBus()

        class FailingHandler:
            def handle(self, event) -> None:
                raise RuntimeError("boom")

        bus.subscribe(OrderCreated, FailingHandler())
        with pytest.raises(RuntimeError):
            bus.publish(OrderCreated(aggregate_id=uuid4()))
