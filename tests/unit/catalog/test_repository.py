"""Unit tests for ProductDjangoRepository.

Covers:
- Look-ups (get_by_id, get_by_sku, find_variation) and malformed ids.
- Conditional stock decrements for products and variations.
"""

from __future__ import annotations

import pytest

from modules.catalog.models import Product, ProductVariation
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.repositories.interfaces import IProductRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return ProductDjangoRepository()


def test_implements_interface(repo):
    assert isinstance(repo, IProductRepository)


class TestLookups:
    def test_get_by_id(self, repo, product):
        found = repo.get_by_id(str(product.id))
        assert found == product
        assert found.supplier.business_name == "Sam Traders"

    @pytest.mark.parametrize("bad_id", ["nope", "1234", ""])
    def test_malformed_id_is_none(self, repo, bad_id):
        assert repo.get_by_id(bad_id) is None

    def test_soft_deleted_is_none(self, repo, product):
        product.delete()
        assert repo.get_by_id(str(product.id)) is None

    def test_get_by_sku_is_case_insensitive(self, repo, make_product):
        product = make_product(sku="ab-12")
        assert repo.get_by_sku(" ab-12 ") == product

    def test_find_variation_matches_exact_pair(self, repo, product, variation):
        assert repo.find_variation(product, "size", "XL") == variation
        assert repo.find_variation(product, "size", "xl") is None
        assert repo.find_variation(product, "color", "XL") is None

    def test_list_applies_filters(self, repo, make_product):
        cheap = make_product(name="Pencil")
        make_product(name="Notebook")

        assert list(repo.list({"name": "Pencil"})) == [cheap]


class TestDecrementStock:
    def test_decrements_product(self, repo, product):
        assert repo.decrement_stock_atomic(product.id, None, 4) is True
        product.refresh_from_db()
        assert product.stock_quantity == 6

    def test_exact_stock_can_be_taken(self, repo, product):
        assert repo.decrement_stock_atomic(product.id, None, 10) is True
        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_rejects_when_short(self, repo, product):
        assert repo.decrement_stock_atomic(product.id, None, 11) is False
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_decrements_variation_too(self, repo, product, variation):
        assert repo.decrement_stock_atomic(product.id, variation, 2) is True

        product.refresh_from_db()
        variation.refresh_from_db()
        assert product.stock_quantity == 8
        assert variation.stock_quantity == 1

    def test_short_variation_rolls_back_product(self, repo, product, variation):
        assert repo.decrement_stock_atomic(product.id, variation, 5) is False

        assert Product.objects.get(id=product.id).stock_quantity == 10
        assert ProductVariation.objects.get(id=variation.id).stock_quantity == 3
