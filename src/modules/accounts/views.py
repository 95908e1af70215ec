"""Account API views."""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.models import DeliveryAssociate
from modules.accounts.permissions import IsAdminOrSupplier
from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.accounts.serializers import (
    DeliveryAssociateSerializer,
    NearbyQuerySerializer,
)


class DeliveryAssociateViewSet(GenericViewSet):
    """Read-only look-ups over delivery associates for dispatchers."""

    queryset = DeliveryAssociate.objects.all()
    serializer_class = DeliveryAssociateSerializer
    permission_classes = [IsAuthenticated, IsAdminOrSupplier]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repository = AccountDjangoRepository()

    @action(detail=False, methods=["get"], url_path="nearby")
    def nearby(self, request: Request) -> Response:
        """GET /api/v1/delivery-associates/nearby/?latitude&longitude&max_distance"""
        query = NearbyQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        associates = self._repository.find_nearby_associates(
            latitude=params["latitude"],
            longitude=params["longitude"],
            max_distance_m=params["max_distance"],
        )
        serializer = DeliveryAssociateSerializer(associates, many=True)
        return Response({"count": len(associates), "results": serializer.data})
