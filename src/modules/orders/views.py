"""Order API views.

Exposes ``OrderService``, ``DeliveryAssignmentService`` and
``InvoiceService`` via HTTP using a DRF ViewSet.  Domain exceptions
propagate to the project exception handler; the view never translates
them by hand.
"""

from __future__ import annotations

from django.http import FileResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.actors import get_request_actor
from modules.accounts.permissions import (
    IsAdmin,
    IsAdminOrSupplier,
    IsCustomer,
    IsCustomerOrSupplier,
    IsDeliveryAssociate,
    IsMarketplaceActor,
    IsOrderParty,
    IsSupplier,
)
from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.delivery import DeliveryAssignmentService
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    DeliveryAddressDTO,
    VariationSelectionDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.invoicing import InvoiceService
from modules.orders.models import Order
from modules.orders.repositories.django_repository import (
    CartDjangoRepository,
    OrderDjangoRepository,
)
from modules.orders.serializers import (
    AssignDeliverySerializer,
    CreateOrderSerializer,
    NearbyOrderSerializer,
    NearbyOrdersQuerySerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateDeliveryStatusSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderService

_ACTION_PERMISSIONS: dict[str, tuple[type[BasePermission], ...]] = {
    "create": (IsCustomer,),
    "list": (IsAdmin,),
    "retrieve": (IsMarketplaceActor,),
    "update_status": (IsMarketplaceActor,),
    "assign_delivery": (IsAdminOrSupplier,),
    "self_assign": (IsDeliveryAssociate,),
    "delivery_status": (IsDeliveryAssociate,),
    "available": (IsDeliveryAssociate,),
    "available_nearby": (IsDeliveryAssociate,),
    "invoice": (IsOrderParty,),
    "mine": (IsCustomerOrSupplier,),
    "status_counts": (IsSupplier,),
}


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses the order services with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer__name"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        self._invoices = InvoiceService(order_repository)
        self._service = OrderService(
            order_repository=order_repository,
            product_repository=ProductDjangoRepository(),
            cart_repository=CartDjangoRepository(),
            invoice_service=self._invoices,
        )
        self._delivery = DeliveryAssignmentService(
            order_repository=order_repository,
            account_repository=AccountDjangoRepository(),
            order_service=self._service,
        )

    def get_permissions(self) -> list[BasePermission]:
        extra = _ACTION_PERMISSIONS.get(self.action, (IsMarketplaceActor,))
        return [IsAuthenticated()] + [permission() for permission in extra]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttling scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "mine"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        if self.action == "mine":
            return self._service.my_orders(get_request_actor(self.request))
        if self.action == "available":
            return self._delivery.available_orders()
        return self._service.list_orders()

    def _paginated(self, request: Request) -> Response:
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        One order is created per supplier in the checkout; the response
        lists all of them.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    variation=VariationSelectionDTO(**item["variation"])
                    if item.get("variation")
                    else None,
                )
                for item in data["items"]
            ],
            delivery_address=DeliveryAddressDTO(**data["delivery_address"]),
            payment_method=data["payment_method"],
            coupon_code=data["coupon_code"] or None,
            is_express_delivery=data["is_express_delivery"],
            notes=data["notes"],
            clear_cart=data["clear_cart"],
        )

        orders = self._service.create_orders(get_request_actor(request), dto)
        out = OrderSerializer(orders, many=True)
        return Response(
            {"count": len(orders), "orders": out.data},
            status=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, customer, supplier, date range) is handled by
        ``OrderFilter``; ordering by ``OrderingFilter``.  Paginated.
        """
        return self._paginated(request)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(get_request_actor(request), pk)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def mine(self, request: Request) -> Response:
        """GET /api/v1/orders/mine/"""
        return self._paginated(request)

    @action(detail=False, methods=["get"], url_path="status-counts")
    def status_counts(self, request: Request) -> Response:
        """GET /api/v1/orders/status-counts/"""
        return Response(self._service.status_counts(get_request_actor(request)))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/"""
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = self._service.update_status(
            get_request_actor(request),
            pk,
            serializer.validated_data["status"],
            serializer.validated_data["note"],
        )
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="assign-delivery")
    def assign_delivery(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/assign-delivery/"""
        serializer = AssignDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = self._delivery.assign(
            get_request_actor(request),
            pk,
            serializer.validated_data["delivery_associate_id"],
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["put"], url_path="self-assign")
    def self_assign(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/self-assign/"""
        order = self._delivery.self_assign(get_request_actor(request), pk)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["put"], url_path="delivery-status")
    def delivery_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/delivery-status/"""
        serializer = UpdateDeliveryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = self._delivery.update_delivery_status(
            get_request_actor(request),
            pk,
            serializer.validated_data["status"],
            serializer.validated_data["note"],
        )
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def available(self, request: Request) -> Response:
        """GET /api/v1/orders/available/"""
        return self._paginated(request)

    @action(detail=False, methods=["get"], url_path="available/nearby")
    def available_nearby(self, request: Request) -> Response:
        """GET /api/v1/orders/available/nearby/?latitude&longitude&max_distance"""
        query = NearbyOrdersQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        orders = self._delivery.available_orders_nearby(
            params["latitude"], params["longitude"], params["max_distance"]
        )
        serializer = NearbyOrderSerializer(orders, many=True)
        return Response({"count": len(orders), "results": serializer.data})

    # ------------------------------------------------------------------
    # Invoice
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post", "get"])
    def invoice(self, request: Request, pk: str | None = None):
        """POST generates (idempotent) / GET downloads /api/v1/orders/{pk}/invoice/"""
        actor = get_request_actor(request)
        if request.method == "GET":
            filename, handle = self._invoices.open(actor, pk)
            return FileResponse(
                handle,
                as_attachment=True,
                filename=filename,
                content_type="text/plain",
            )

        url = self._invoices.generate(actor, pk)
        return Response({"invoice_url": url})
