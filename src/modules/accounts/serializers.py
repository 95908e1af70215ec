"""Account DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.models import DeliveryAssociate


class NearbyQuerySerializer(serializers.Serializer):
    """Query parameters of radius searches."""

    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    max_distance = serializers.FloatField(
        min_value=1, max_value=100_000, required=False, default=10_000
    )


class DeliveryAssociateSerializer(serializers.ModelSerializer):
    distance_m = serializers.FloatField(read_only=True, required=False)

    class Meta:
        model = DeliveryAssociate
        fields = [
            "id",
            "name",
            "phone",
            "vehicle_type",
            "is_available",
            "latitude",
            "longitude",
            "distance_m",
        ]
        read_only_fields = fields
