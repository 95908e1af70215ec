"""Unit tests for ProductService.

Covers:
- create_product: ownership, variations, duplicate SKU.
- get_product: found, missing, soft-deleted.
- list_products: delegation to the repository.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from modules.catalog.dtos import CreateProductDTO, CreateVariationDTO
from modules.catalog.exceptions import ProductAlreadyExists, ProductNotFound
from modules.catalog.models import ProductVariation
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.services import ProductService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return ProductService(repository=ProductDjangoRepository())


def _dto(**overrides) -> CreateProductDTO:
    data = {
        "sku": "tee-001",
        "name": "Graphic Tee",
        "price": Decimal("499.00"),
        "stock_quantity": 25,
    }
    data.update(overrides)
    return CreateProductDTO(**data)


class TestCreateProduct:
    def test_product_belongs_to_calling_supplier(self, service, supplier, as_actor):
        product = service.create_product(as_actor(supplier), _dto())

        assert product.supplier_id == supplier.id
        assert product.sku == "TEE-001"
        assert product.stock_quantity == 25

    def test_variations_are_created(self, service, supplier, as_actor):
        product = service.create_product(
            as_actor(supplier),
            _dto(
                variations=[
                    CreateVariationDTO(name="size", value="M", stock_quantity=5),
                    CreateVariationDTO(
                        name="size", value="XL", additional_price=Decimal("50"), stock_quantity=2
                    ),
                ]
            ),
        )

        variations = ProductVariation.objects.filter(product=product).order_by("value")
        assert [(v.value, v.additional_price) for v in variations] == [
            ("M", Decimal("0.00")),
            ("XL", Decimal("50.00")),
        ]

    def test_duplicate_sku(self, service, supplier, as_actor, make_product):
        make_product(sku="TEE-001")

        with pytest.raises(ProductAlreadyExists) as exc_info:
            service.create_product(as_actor(supplier), _dto())

        assert exc_info.value.status_code == 409


class TestGetProduct:
    def test_found(self, service, product):
        assert service.get_product(str(product.id)) == product

    def test_missing(self, service):
        with pytest.raises(ProductNotFound):
            service.get_product("0190b8a0-0000-7000-8000-000000000000")

    def test_soft_deleted_is_missing(self, service, product):
        product.delete()
        with pytest.raises(ProductNotFound):
            service.get_product(str(product.id))


class TestListProducts:
    def test_delegates_to_repository(self):
        repo = MagicMock()
        service = ProductService(repository=repo)

        service.list_products({"status": "active"})

        repo.list.assert_called_once_with({"status": "active"})
        repo.list.return_value.prefetch_related.assert_called_once_with("variations")
