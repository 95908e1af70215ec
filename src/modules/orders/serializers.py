"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    DEFAULT_NEARBY_DISTANCE_M,
    DeliveryStatus,
    OrderStatus,
    PaymentMethod,
)
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class VariationSelectionSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    value = serializers.CharField(max_length=100)


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    variation = VariationSelectionSerializer(required=False, allow_null=True, default=None)


class DeliveryAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=20)
    latitude = serializers.FloatField(required=False, allow_null=True, default=None)
    longitude = serializers.FloatField(required=False, allow_null=True, default=None)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout payload; prices always come from the catalog."""

    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    delivery_address = DeliveryAddressSerializer()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    coupon_code = serializers.CharField(
        max_length=50, required=False, allow_blank=True, allow_null=True, default=None
    )
    is_express_delivery = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    clear_cart = serializers.BooleanField(required=False, default=False)


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    note = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateDeliveryStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DeliveryStatus.choices)
    note = serializers.CharField(required=False, default="", allow_blank=True)


class AssignDeliverySerializer(serializers.Serializer):
    delivery_associate_id = serializers.UUIDField()


class NearbyOrdersQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    max_distance = serializers.FloatField(
        min_value=1, max_value=100_000, default=DEFAULT_NEARBY_DISTANCE_M
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "discounted_price",
            "variation_name",
            "variation_value",
            "total_price",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ["id", "status", "updated_by", "updated_by_model", "note", "created_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    delivery_address = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "supplier_id",
            "status",
            "subtotal",
            "coupon_code",
            "discount_amount",
            "taxes",
            "delivery_charge",
            "total_amount",
            "payment_method",
            "payment_status",
            "delivery_associate_id",
            "delivery_assigned_at",
            "delivery_status",
            "delivery_address",
            "is_express_delivery",
            "notes",
            "invoice_url",
            "estimated_delivery_date",
            "delivered_at",
            "cancellation_reason",
            "return_reason",
            "version",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_delivery_address(self, obj: Order) -> dict:
        return {
            "street": obj.shipping_street,
            "city": obj.shipping_city,
            "state": obj.shipping_state,
            "postal_code": obj.shipping_postal_code,
            "country": obj.shipping_country,
            "phone": obj.shipping_phone,
            "latitude": obj.shipping_latitude,
            "longitude": obj.shipping_longitude,
        }


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "supplier_id",
            "status",
            "delivery_status",
            "total_amount",
            "payment_method",
            "created_at",
        ]
        read_only_fields = fields


class NearbyOrderSerializer(OrderListSerializer):
    distance_m = serializers.FloatField(read_only=True)
    shipping_city = serializers.CharField(read_only=True)
    shipping_latitude = serializers.FloatField(read_only=True)
    shipping_longitude = serializers.FloatField(read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            "shipping_city",
            "shipping_latitude",
            "shipping_longitude",
            "distance_m",
        ]
        read_only_fields = fields
