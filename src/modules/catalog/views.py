"""Catalog API views.

Listing and retrieval are open to every authenticated caller; creating a
product requires a supplier profile.  Domain errors are rendered by the
project exception handler.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.actors import get_request_actor
from modules.accounts.permissions import IsSupplier
from modules.catalog.dtos import CreateProductDTO, CreateVariationDTO
from modules.catalog.filters import ProductFilter
from modules.catalog.models import Product
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.serializers import CreateProductSerializer, ProductSerializer
from modules.catalog.services import ProductService


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for the Product catalog.

    Uses ``ProductService`` with ``ProductDjangoRepository`` (DIP).
    """

    filterset_class = ProductFilter
    search_fields = ["name", "sku", "description"]
    ordering_fields = ["name", "price", "stock_quantity", "created_at"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Product.objects.all()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(repository=ProductDjangoRepository())

    def get_permissions(self):
        if self.action == "create":
            return [IsAuthenticated(), IsSupplier()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._service.get_product(pk)
        return Response(ProductSerializer(product).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        serializer = CreateProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = CreateProductDTO(
            sku=data["sku"],
            name=data["name"],
            description=data["description"],
            price=data["price"],
            discounted_price=data["discounted_price"],
            stock_quantity=data["stock_quantity"],
            variations=[CreateVariationDTO(**v) for v in data["variations"]],
        )
        product = self._service.create_product(get_request_actor(request), dto)
        product = self._service.get_product(str(product.id))
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
