"""Concurrency integration tests.

Prove that the conditional UPDATEs and row locks serialize competing
writers on a real database server:

- 10 threads buy 1 unit of a product with stock 5: exactly 5 succeed and
  the stock ends at 0.
- 5 associates self-assign the same order: exactly one wins.

Uses ``TransactionTestCase`` so each thread sees committed data.  SQLite
serializes writers at the file level, so these run only on MySQL or
PostgreSQL (``TEST_DATABASE_URL``).
"""

from __future__ import annotations

import itertools
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.db import connection, connections
from django.test import TransactionTestCase

from modules.accounts.actors import Actor
from modules.accounts.models import Customer, DeliveryAssociate, Supplier
from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.catalog.models import Product
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.constants import PaymentMethod
from modules.orders.delivery import DeliveryAssignmentService
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, DeliveryAddressDTO
from modules.orders.exceptions import AlreadyAssigned, InsufficientStock
from modules.orders.models import Order
from modules.orders.repositories.django_repository import (
    CartDjangoRepository,
    OrderDjangoRepository,
)
from modules.orders.services import OrderService

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        connection.vendor == "sqlite",
        reason="row-level locking needs a database server",
    ),
]

INITIAL_STOCK = 5
NUM_WORKERS = 10

_seq = itertools.count(1)

ADDRESS = {
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "postal_code": "560001",
    "country": "India",
    "phone": "9876500000",
}


def _profile(model, **fields):
    n = next(_seq)
    user = get_user_model().objects.create_user(username=f"race-{model.__name__}-{n}", password="x")
    return model.objects.create(
        user=user, name=f"Race {n}", email=f"race-{n}@example.com", **fields
    )


def _order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        cart_repository=CartDjangoRepository(),
    )


class TestStockConcurrency(TransactionTestCase):
    def setUp(self):
        self.customer = _profile(Customer)
        self.product = Product.objects.create(
            supplier=_profile(Supplier),
            sku="GAMER-PC",
            name="Gamer PC",
            price=Decimal("2999.99"),
            stock_quantity=INITIAL_STOCK,
        )

    def _buy_one(self, _worker: int) -> str:
        try:
            _order_service().create_orders(
                Actor(id=self.customer.id, role=Customer.ROLE),
                CreateOrderDTO(
                    items=[CreateOrderItemDTO(product_id=self.product.id, quantity=1)],
                    delivery_address=DeliveryAddressDTO(**ADDRESS),
                    payment_method=PaymentMethod.CASH_ON_DELIVERY,
                ),
            )
            return "success"
        except InsufficientStock:
            return "insufficient"
        finally:
            connections.close_all()

    def test_concurrent_orders_exhaust_stock(self):
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            results = list(pool.map(self._buy_one, range(NUM_WORKERS)))

        self.assertEqual(results.count("success"), INITIAL_STOCK)
        self.assertEqual(results.count("insufficient"), NUM_WORKERS - INITIAL_STOCK)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)
        self.assertEqual(Order.objects.count(), INITIAL_STOCK)


class TestSelfAssignConcurrency(TransactionTestCase):
    def setUp(self):
        customer = _profile(Customer)
        product = Product.objects.create(
            supplier=_profile(Supplier), sku="RACE-1", name="Race", price=Decimal("10"), stock_quantity=5
        )
        (self.order,) = _order_service().create_orders(
            Actor(id=customer.id, role=Customer.ROLE),
            CreateOrderDTO(
                items=[CreateOrderItemDTO(product_id=product.id, quantity=1)],
                delivery_address=DeliveryAddressDTO(**ADDRESS),
                payment_method=PaymentMethod.CASH_ON_DELIVERY,
            ),
        )
        self.associates = [_profile(DeliveryAssociate) for _ in range(5)]

    def _claim(self, associate) -> str:
        service = DeliveryAssignmentService(
            order_repository=OrderDjangoRepository(),
            account_repository=AccountDjangoRepository(),
            order_service=_order_service(),
        )
        try:
            service.self_assign(Actor(id=associate.id, role=DeliveryAssociate.ROLE), self.order.id)
            return "assigned"
        except AlreadyAssigned:
            return "conflict"
        finally:
            connections.close_all()

    def test_exactly_one_associate_wins(self):
        with ThreadPoolExecutor(max_workers=len(self.associates)) as pool:
            results = list(pool.map(self._claim, self.associates))

        self.assertEqual(results.count("assigned"), 1)
        self.assertEqual(results.count("conflict"), len(self.associates) - 1)

        self.order.refresh_from_db()
        winner = self.associates[results.index("assigned")]
        self.assertEqual(self.order.delivery_associate_id, winner.id)
