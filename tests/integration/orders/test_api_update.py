"""Integration tests for order write endpoints after checkout.

Covers:
- PUT status: role transition table, history attribution, 409 extras.
- Delivery: assign, self-assign, delivery-status, available, nearby.
- Invoice: generate (POST) and download (GET).
"""

from __future__ import annotations

import pytest

from modules.orders.constants import DeliveryStatus, OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def _set(order, **fields):
    Order.objects.filter(id=order.id).update(**fields)
    order.refresh_from_db()
    return order


class TestUpdateStatus:
    def test_admin_confirms_order(self, client_for, admin, order):
        response = client_for(admin).put(
            f"{URL}{order.id}/status/", {"status": "processing", "note": "stock checked"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.PROCESSING
        assert data["version"] == order.version + 1
        last = data["status_history"][-1]
        assert last["updated_by"] == str(admin.id)
        assert last["updated_by_model"] == "Admin"
        assert last["note"] == "stock checked"

    def test_customer_cancels_pending_order(self, client_for, customer, order):
        response = client_for(customer).put(
            f"{URL}{order.id}/status/", {"status": "cancelled", "note": "ordered twice"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "ordered twice"

    def test_customer_cannot_reopen_delivered_order(self, client_for, customer, order):
        _set(order, status=OrderStatus.DELIVERED)

        response = client_for(customer).put(
            f"{URL}{order.id}/status/", {"status": "processing"}, format="json"
        )

        assert response.status_code == 409
        error = response.json()["errors"][0]
        assert (error["from_status"], error["to_status"], error["role"]) == (
            "delivered",
            "processing",
            "customer",
        )
        assert Order.objects.get(id=order.id).status == OrderStatus.DELIVERED

    def test_unknown_status_is_400(self, client_for, admin, order):
        response = client_for(admin).put(f"{URL}{order.id}/status/", {"status": "shipped"}, format="json")
        assert response.status_code == 400

    def test_non_participant_is_forbidden(self, client_for, other_supplier, order):
        response = client_for(other_supplier).put(
            f"{URL}{order.id}/status/", {"status": "cancelled"}, format="json"
        )
        assert response.status_code == 403

    def test_return_records_reason(self, client_for, customer, order):
        _set(order, status=OrderStatus.DELIVERED)

        response = client_for(customer).put(f"{URL}{order.id}/status/", {"status": "returned"}, format="json")

        assert response.status_code == 200
        assert response.json()["return_reason"] == "No reason provided"


class TestDeliveryEndpoints:
    def test_supplier_assigns_associate(self, client_for, supplier, associate, order):
        _set(order, status=OrderStatus.PROCESSING)

        response = client_for(supplier).put(
            f"{URL}{order.id}/assign-delivery/",
            {"delivery_associate_id": str(associate.id)},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["delivery_associate_id"] == str(associate.id)
        assert response.json()["delivery_status"] == DeliveryStatus.ASSIGNED

    def test_assign_unknown_associate(self, client_for, admin, order):
        _set(order, status=OrderStatus.PROCESSING)
        response = client_for(admin).put(
            f"{URL}{order.id}/assign-delivery/",
            {"delivery_associate_id": "0190b8a0-0000-7000-8000-000000000000"},
            format="json",
        )
        assert response.status_code == 404

    def test_self_assign_then_conflict(self, client_for, associate, other_associate, order):
        first = client_for(associate).put(f"{URL}{order.id}/self-assign/")
        second = client_for(other_associate).put(f"{URL}{order.id}/self-assign/")

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["errors"][0]["code"] == "already_assigned"

    def test_delivery_flow_marks_order_delivered(self, client_for, associate, order):
        client = client_for(associate)
        client.put(f"{URL}{order.id}/self-assign/")

        for step in ("picked_up", "on_the_way", "delivered"):
            response = client.put(f"{URL}{order.id}/delivery-status/", {"status": step}, format="json")
            assert response.status_code == 200, response.json()

        data = response.json()
        assert data["status"] == OrderStatus.DELIVERED
        assert data["delivery_status"] == DeliveryStatus.DELIVERED
        assert data["status_history"][-1]["updated_by_model"] == "DeliveryAssociate"

    def test_skipping_delivery_step(self, client_for, associate, order):
        client = client_for(associate)
        client.put(f"{URL}{order.id}/self-assign/")

        response = client.put(f"{URL}{order.id}/delivery-status/", {"status": "delivered"}, format="json")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_delivery_transition"

    def test_available_lists_unassigned(self, client_for, associate, place_order, product):
        open_order, = place_order((product, 1))
        taken, = place_order((product, 1))
        client = client_for(associate)
        client.put(f"{URL}{taken.id}/self-assign/")

        response = client.get(f"{URL}available/")

        assert response.status_code == 200
        assert {row["id"] for row in response.json()["results"]} == {str(open_order.id)}

    def test_available_nearby(self, client_for, associate, order):
        response = client_for(associate).get(
            f"{URL}available/nearby/",
            {"latitude": 12.9716, "longitude": 77.5946, "max_distance": 5000},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        row = data["results"][0]
        assert row["id"] == str(order.id)
        assert row["shipping_city"] == "Bengaluru"
        assert 0 < row["distance_m"] < 5000

    def test_nearby_requires_coordinates(self, client_for, associate):
        response = client_for(associate).get(f"{URL}available/nearby/", {"latitude": 12.97})

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "longitude"

    def test_customers_cannot_browse_available(self, client_for, customer):
        assert client_for(customer).get(f"{URL}available/").status_code == 403


class TestInvoice:
    def test_generate_and_download(self, client_for, customer, order):
        _set(order, status=OrderStatus.DELIVERED)
        client = client_for(customer)

        generated = client.post(f"{URL}{order.id}/invoice/")
        download = client.get(f"{URL}{order.id}/invoice/")

        assert generated.status_code == 200
        assert generated.json()["invoice_url"].endswith(".txt")
        assert download.status_code == 200
        assert download["Content-Type"].startswith("text/plain")
        assert f'invoice-{order.order_number}.txt' in download["Content-Disposition"]
        body = b"".join(download.streaming_content).decode("utf-8")
        assert order.order_number in body

    def test_generation_is_idempotent(self, client_for, supplier, order):
        _set(order, payment_method=PaymentMethod.UPI, payment_status=PaymentStatus.PAID)
        client = client_for(supplier)

        first = client.post(f"{URL}{order.id}/invoice/").json()["invoice_url"]
        second = client.post(f"{URL}{order.id}/invoice/").json()["invoice_url"]

        assert first == second

    def test_not_eligible(self, client_for, customer, order):
        response = client_for(customer).post(f"{URL}{order.id}/invoice/")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invoice_not_eligible"

    def test_download_before_generation(self, client_for, customer, order):
        response = client_for(customer).get(f"{URL}{order.id}/invoice/")
        assert response.status_code == 404

    def test_associate_cannot_fetch_invoice(self, client_for, associate, order):
        _set(order, status=OrderStatus.DELIVERED, delivery_associate=associate)
        assert client_for(associate).post(f"{URL}{order.id}/invoice/").status_code == 403


def test_every_transition_appends_history(client_for, admin, order):
    client = client_for(admin)
    for status in ("processing", "out_for_delivery", "delivered"):
        client.put(f"{URL}{order.id}/status/", {"status": status}, format="json")

    statuses = list(
        OrderStatusHistory.objects.filter(order=order).values_list("status", flat=True)
    )
    assert statuses == ["pending", "processing", "out_for_delivery", "delivered"]
