"""Unit tests for OrderDjangoRepository and CartDjangoRepository.

Covers:
- Reads with eager-loaded relations; malformed and soft-deleted ids.
- Optimistic version claims.
- The conditional associate assignment and invoice url writes.
- Cart clearing.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.utils import timezone

from modules.orders.constants import ASSIGNABLE_STATUSES, OrderStatus
from modules.orders.models import Cart, CartItem, Order
from modules.orders.repositories.django_repository import CartDjangoRepository
from modules.orders.repositories.interfaces import IOrderRepository

pytestmark = pytest.mark.unit


def test_repository_implements_interface(order_repository):
    assert isinstance(order_repository, IOrderRepository)


class TestReads:
    def test_get_by_id_prefetches_items_and_history(
        self, order_repository, order, django_assert_num_queries
    ):
        with django_assert_num_queries(4):
            fetched = order_repository.get_by_id(str(order.id))
            items = list(fetched.items.all())
            history = list(fetched.status_history.all())
            customer_name = fetched.customer.name

        assert items[0].product.name == "Cotton Shirt"
        assert history[0].status == OrderStatus.PENDING
        assert customer_name == "Asha Customer"

    @pytest.mark.parametrize("bad_id", ["not-a-uuid", "", "0190b8a0-0000-7000-8000-000000000000"])
    def test_get_by_id_unknown(self, order_repository, bad_id):
        assert order_repository.get_by_id(bad_id) is None

    def test_soft_deleted_is_invisible(self, order_repository, order):
        assert order_repository.delete(str(order.id)) is True

        assert order_repository.get_by_id(str(order.id)) is None
        assert order_repository.delete(str(order.id)) is False
        assert Order.objects.dead().filter(id=order.id).exists()

    def test_list_applies_filters(self, order_repository, order, customer, other_customer):
        assert list(order_repository.list({"customer_id": customer.id})) == [order]
        assert not order_repository.list({"customer_id": other_customer.id}).exists()

    def test_get_for_update(self, order_repository, order):
        assert order_repository.get_for_update(str(order.id)) == order
        assert order_repository.get_for_update("nope") is None


class TestClaimVersion:
    def test_claim_bumps_version(self, order_repository, order):
        start = order.version

        assert order_repository.claim_version(order) is True
        assert order.version == start + 1
        assert Order.objects.get(id=order.id).version == start + 1

    def test_stale_copy_loses(self, order_repository, order):
        stale = Order.objects.get(id=order.id)
        order_repository.claim_version(order)

        assert order_repository.claim_version(stale) is False


class TestAssignIfUnassigned:
    def test_assigns_once(self, order_repository, order, associate, other_associate):
        now = timezone.now()

        first = order_repository.assign_if_unassigned(order.id, associate.id, ASSIGNABLE_STATUSES, now)
        second = order_repository.assign_if_unassigned(
            order.id, other_associate.id, ASSIGNABLE_STATUSES, now
        )

        assert (first, second) == (True, False)
        order.refresh_from_db()
        assert order.delivery_associate_id == associate.id
        assert order.delivery_status == "assigned"
        assert order.delivery_assigned_at == now

    def test_status_outside_allowed_set(self, order_repository, order, associate):
        assert not order_repository.assign_if_unassigned(
            order.id, associate.id, [OrderStatus.PROCESSING], timezone.now()
        )


class TestInvoiceUrl:
    def test_first_writer_wins(self, order_repository, order):
        assert order_repository.set_invoice_url_if_empty(order.id, "/media/invoices/a.txt")
        assert not order_repository.set_invoice_url_if_empty(order.id, "/media/invoices/b.txt")

        order.refresh_from_db()
        assert order.invoice_url == "/media/invoices/a.txt"


class TestCartRepository:
    def test_clear_empties_cart(self, customer, product):
        cart = Cart.objects.create(customer=customer, subtotal=Decimal("200.00"))
        CartItem.objects.create(cart=cart, product=product, quantity=2, price=Decimal("100.00"))

        CartDjangoRepository().clear(customer.id)

        cart.refresh_from_db()
        assert cart.subtotal == Decimal("0.00")
        assert not CartItem.objects.filter(cart=cart).exists()

    def test_clear_without_cart(self, customer):
        CartDjangoRepository().clear(customer.id)
        assert not Cart.objects.exists()
