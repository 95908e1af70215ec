"""Integration tests for the transactional outbox and its relay.

Events are written in the business transaction and published after
commit; handlers turn them into notifications.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from django.core import mail

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import relay_outbox_events
from modules.orders import handlers
from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.integration


class TestOutboxWrites:
    def test_checkout_writes_one_pending_event_per_order(self, order):
        (event,) = OutboxEvent.objects.filter(aggregate_id=str(order.id))

        assert event.event_type == "OrderCreated"
        assert event.status == EventStatus.PENDING
        assert event.topic == "orders"
        assert event.payload["order_number"] == order.order_number

    def test_status_change_writes_event(self, order_service, order, admin, as_actor):
        order_service.update_status(as_actor(admin), order.id, OrderStatus.PROCESSING)

        event = OutboxEvent.objects.get(event_type="OrderStatusChanged")
        assert event.payload["old_status"] == "pending"
        assert event.payload["new_status"] == "processing"
        assert event.payload["changed_by"] == "Admin"

    def test_relay_is_kicked_after_commit(
        self, place_order, product, customer, supplier, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            (order,) = place_order((product, 1))

        assert callbacks
        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at is not None
        assert sorted(m.subject for m in mail.outbox) == ["New Order Received", "Order Confirmation"]
        assert {m.to[0] for m in mail.outbox} == {customer.email, supplier.email}


class TestRelay:
    def test_publishes_pending_events(self, order):
        result = relay_outbox_events()

        assert result == {"published": 1, "failed": 0}
        assert OutboxEvent.objects.get().status == EventStatus.PUBLISHED
        assert len(mail.outbox) == 2

    def test_published_events_are_not_replayed(self, order):
        relay_outbox_events()
        mail.outbox.clear()

        assert relay_outbox_events() == {"published": 0, "failed": 0}
        assert mail.outbox == []

    def test_handler_failure_marks_event_failed(self, order):
        with patch.object(
            handlers.OrderCreatedHandler, "handle", side_effect=RuntimeError("template crash")
        ):
            result = relay_outbox_events()

        assert result == {"published": 0, "failed": 1}
        event = OutboxEvent.objects.get()
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1
        assert "template crash" in event.error_message

    def test_failed_event_is_retried(self, order):
        with patch.object(handlers.OrderCreatedHandler, "handle", side_effect=RuntimeError("x")):
            relay_outbox_events()

        assert relay_outbox_events() == {"published": 1, "failed": 0}
        assert OutboxEvent.objects.get().error_message is None

    def test_exhausted_event_is_left_alone(self, order, settings):
        settings.OUTBOX_MAX_RETRIES = 1
        with patch.object(handlers.OrderCreatedHandler, "handle", side_effect=RuntimeError("x")):
            relay_outbox_events()

        assert relay_outbox_events() == {"published": 0, "failed": 0}
        assert OutboxEvent.objects.exhausted(1).count() == 1

    def test_batch_size(self, place_order, product):
        place_order((product, 1))
        place_order((product, 1))

        assert relay_outbox_events(batch_size=1) == {"published": 1, "failed": 0}


class TestReturnNotifications:
    def test_return_emails_supplier_and_admins(
        self, order_service, order, customer, supplier, admin, as_actor
    ):
        order.status = OrderStatus.DELIVERED
        order.save()
        OutboxEvent.objects.all().delete()

        order_service.update_status(as_actor(customer), order.id, OrderStatus.RETURNED, "Too small")
        relay_outbox_events()

        returned = [m for m in mail.outbox if "Return Requested" in m.subject]
        assert sorted(m.to[0] for m in returned) == sorted([supplier.email, admin.email])
        assert "Too small" in returned[0].body
        status_mail = [m for m in mail.outbox if m.to == [customer.email]]
        assert status_mail[0].subject == f"Order {order.order_number} is now returned"
