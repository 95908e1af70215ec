from __future__ import annotations

import itertools
from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model

from rest_framework.test import APIClient

from modules.accounts.actors import Actor
from modules.accounts.models import Admin, Customer, DeliveryAssociate, Supplier
from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.catalog.models import Product, ProductStatus, ProductVariation
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.constants import PaymentMethod
from modules.orders.delivery import DeliveryAssignmentService
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, DeliveryAddressDTO
from modules.orders.invoicing import InvoiceService
from modules.orders.repositories.django_repository import (
    CartDjangoRepository,
    OrderDjangoRepository,
)
from modules.orders.services import OrderService

User = get_user_model()

_seq = itertools.count(1)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_profile():
    """Create a role profile bound to a fresh auth user."""

    def _make(model, **fields):
        n = next(_seq)
        role = model.__name__.lower()
        user = User.objects.create_user(username=f"{role}-{n}", password="testpass123")
        fields.setdefault("name", f"{model.__name__} {n}")
        fields.setdefault("email", f"{role}-{n}@example.com")
        fields.setdefault("phone", f"98765{n:05d}")
        return model.objects.create(user=user, **fields)

    return _make


@pytest.fixture()
def customer(make_profile):
    return make_profile(Customer, name="Asha Customer")


@pytest.fixture()
def other_customer(make_profile):
    return make_profile(Customer, name="Ravi Customer")


@pytest.fixture()
def supplier(make_profile):
    return make_profile(Supplier, name="Sam Supplier", business_name="Sam Traders")


@pytest.fixture()
def other_supplier(make_profile):
    return make_profile(Supplier, name="Olga Supplier", business_name="Olga Goods")


@pytest.fixture()
def admin(make_profile):
    return make_profile(Admin, name="Ada Admin")


@pytest.fixture()
def associate(make_profile):
    return make_profile(
        DeliveryAssociate, name="Dev Rider", latitude=12.9716, longitude=77.5946
    )


@pytest.fixture()
def other_associate(make_profile):
    return make_profile(
        DeliveryAssociate, name="Dia Rider", latitude=12.9352, longitude=77.6245
    )


def actor_of(profile) -> Actor:
    return Actor(id=profile.id, role=profile.ROLE)


@pytest.fixture()
def as_actor():
    return actor_of


@pytest.fixture()
def client_for():
    """APIClient authenticated as the user behind ``profile``."""

    def _client(profile) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=profile.user)
        return client

    return _client


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product(supplier):
    def _make(owner=None, **fields):
        n = next(_seq)
        fields.setdefault("sku", f"SKU-{n:04d}")
        fields.setdefault("name", f"Product {n}")
        fields.setdefault("price", Decimal("100.00"))
        fields.setdefault("stock_quantity", 10)
        fields.setdefault("status", ProductStatus.ACTIVE)
        return Product.objects.create(supplier=owner or supplier, **fields)

    return _make


@pytest.fixture()
def product(make_product):
    return make_product(name="Cotton Shirt", price=Decimal("100.00"), stock_quantity=10)


@pytest.fixture()
def variation(product):
    return ProductVariation.objects.create(
        product=product,
        name="size",
        value="XL",
        additional_price=Decimal("15.00"),
        stock_quantity=3,
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def address_payload():
    return {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "postal_code": "560001",
        "country": "India",
        "phone": "9876500000",
        "latitude": 12.9750,
        "longitude": 77.6050,
    }


@pytest.fixture()
def order_repository():
    return OrderDjangoRepository()


@pytest.fixture()
def order_service(order_repository):
    return OrderService(
        order_repository=order_repository,
        product_repository=ProductDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        invoice_service=InvoiceService(order_repository),
    )


@pytest.fixture()
def delivery_service(order_repository, order_service):
    return DeliveryAssignmentService(
        order_repository=order_repository,
        account_repository=AccountDjangoRepository(),
        order_service=order_service,
    )


@pytest.fixture()
def place_order(order_service, customer, address_payload):
    """Place a checkout through the service and return the created orders."""

    def _place(*lines, buyer=None, **options):
        options.setdefault("payment_method", PaymentMethod.CASH_ON_DELIVERY)
        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=p.id, quantity=q) for p, q in lines
            ],
            delivery_address=DeliveryAddressDTO(**address_payload),
            **options,
        )
        return order_service.create_orders(actor_of(buyer or customer), dto)

    return _place


@pytest.fixture()
def order(place_order, product):
    """A single pending cash-on-delivery order for two units of ``product``."""
    return place_order((product, 2))[0]
