"""Catalog DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import Product, ProductVariation


class VariationSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductVariation
        fields = ["id", "name", "value", "additional_price", "stock_quantity"]
        read_only_fields = ["id"]


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    supplier_id = serializers.UUIDField(read_only=True)
    variations = VariationSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "supplier_id",
            "sku",
            "name",
            "description",
            "price",
            "discounted_price",
            "stock_quantity",
            "status",
            "variations",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CreateProductSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, default="", allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    discounted_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True, default=None
    )
    stock_quantity = serializers.IntegerField(min_value=0, default=0)
    variations = VariationSerializer(many=True, required=False, default=list)
