"""Delivery assignment use cases.

Explicit assignment by an admin or the order's supplier, first-come
self-assignment by delivery associates, and the delivery sub-status flow.
A ``delivered`` sub-status forces the primary order status to
``delivered`` through the order state machine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.accounts.exceptions import DeliveryAssociateNotFound
from modules.accounts.models import Role
from modules.core.geo import bounding_box, haversine_distance_m
from modules.orders.constants import (
    ASSIGNABLE_STATUSES,
    DEFAULT_NEARBY_DISTANCE_M,
    DeliveryStatus,
    OrderStatus,
)
from modules.orders.events import DeliveryAssigned
from modules.orders.exceptions import (
    AlreadyAssigned,
    NotOrderParticipant,
    OrderNotAssignable,
    OrderNotFound,
)
from modules.orders.services import OrderService
from modules.orders.state_machine import DeliveryStateMachine, OrderStateMachine

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.actors import Actor
    from modules.accounts.repositories.interfaces import IAccountRepository
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class DeliveryAssignmentService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        account_repository: IAccountRepository,
        order_service: OrderService,
        state_machine: Optional[OrderStateMachine] = None,
    ) -> None:
        self._order_repo = order_repository
        self._accounts = account_repository
        self._orders = order_service
        self._machine = state_machine or OrderStateMachine()
        self._delivery_machine = DeliveryStateMachine(
            on_delivered=self._machine.force_delivered
        )

    @transaction.atomic
    def assign(self, actor: Actor, order_id: str, associate_id: str) -> Order:
        """Attach ``associate_id`` to a processing order, replacing any previous one.

        Raises:
            OrderNotFound, NotOrderParticipant, DeliveryAssociateNotFound,
            OrderNotAssignable, ConcurrentOrderUpdate
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        allowed = actor.role == Role.ADMIN or (
            actor.role == Role.SUPPLIER and order.supplier_id == actor.id
        )
        if not allowed:
            raise NotOrderParticipant(
                "Only an admin or the order's supplier can assign a delivery associate."
            )

        associate = self._accounts.get_delivery_associate(str(associate_id))
        if associate is None:
            raise DeliveryAssociateNotFound(f"Delivery associate {associate_id} not found.")

        if order.status != OrderStatus.PROCESSING:
            raise OrderNotAssignable(
                "Order must be processing to assign a delivery associate."
            )

        previous = order.delivery_associate_id
        order.delivery_associate = associate
        order.delivery_assigned_at = timezone.now()
        order.delivery_status = DeliveryStatus.ASSIGNED
        order.add_domain_event(
            DeliveryAssigned(
                aggregate_id=order.id,
                order_number=order.order_number,
                associate_id=str(associate.id),
            )
        )
        self._orders.persist(order)

        logger.info(
            "delivery.assigned",
            order_id=str(order.id),
            associate_id=str(associate.id),
            replaced=str(previous) if previous else None,
            assigned_by=actor.role,
        )
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def self_assign(self, actor: Actor, order_id: str) -> Order:
        """Claim an unassigned pending/processing order for the calling associate.

        The claim is a single conditional UPDATE, so of two racing associates
        exactly one wins.
        """
        if actor.role != Role.DELIVERY_ASSOCIATE:
            raise NotOrderParticipant("Only delivery associates can self-assign orders.")

        claimed = self._order_repo.assign_if_unassigned(
            order_id, actor.id, ASSIGNABLE_STATUSES, timezone.now()
        )
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        if not claimed:
            if order.delivery_associate_id is not None:
                logger.info(
                    "delivery.self_assign_lost",
                    order_id=str(order.id),
                    associate_id=str(actor.id),
                )
                raise AlreadyAssigned()
            raise OrderNotAssignable()

        order.add_domain_event(
            DeliveryAssigned(
                aggregate_id=order.id,
                order_number=order.order_number,
                associate_id=str(actor.id),
            )
        )
        self._order_repo.save(order)

        logger.info(
            "delivery.self_assigned", order_id=str(order.id), associate_id=str(actor.id)
        )
        return order

    @transaction.atomic
    def update_delivery_status(
        self, actor: Actor, order_id: str, new_status: str, note: str = ""
    ) -> Order:
        """Advance the delivery sub-status; only the assigned associate may do so.

        Raises:
            OrderNotFound, NotOrderParticipant, InvalidDeliveryTransition,
            ConcurrentOrderUpdate
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if (
            actor.role != Role.DELIVERY_ASSOCIATE
            or order.delivery_associate_id != actor.id
        ):
            raise NotOrderParticipant("Only the assigned delivery associate can do this.")

        old_status = order.delivery_status
        self._delivery_machine.transition(order, actor, new_status, note)
        self._orders.persist(order)

        logger.info(
            "delivery.status_updated",
            order_id=str(order.id),
            old_status=old_status or None,
            new_status=new_status,
        )
        if new_status == DeliveryStatus.DELIVERED:
            self._orders.schedule_auto_invoice(order)
        return self._order_repo.get_by_id(str(order.id))

    def available_orders(self) -> QuerySet:
        return self._order_repo.available_for_delivery()

    def available_orders_nearby(
        self,
        latitude: float,
        longitude: float,
        max_distance_m: float = DEFAULT_NEARBY_DISTANCE_M,
    ) -> List[Order]:
        """Unassigned orders within ``max_distance_m`` of a point, nearest first.

        Each returned order carries a ``distance_m`` attribute.
        """
        box = bounding_box(latitude, longitude, max_distance_m)
        candidates = self.available_orders().filter(
            shipping_latitude__range=(box.min_lat, box.max_lat),
            shipping_longitude__range=(box.min_lng, box.max_lng),
        )

        nearby = []
        for order in candidates:
            distance = haversine_distance_m(
                latitude, longitude, order.shipping_latitude, order.shipping_longitude
            )
            if distance <= max_distance_m:
                order.distance_m = round(distance, 1)
                nearby.append(order)
        nearby.sort(key=lambda o: o.distance_m)

        logger.info(
            "delivery.nearby_orders",
            candidates=len(candidates),
            matched=len(nearby),
            max_distance_m=max_distance_m,
        )
        return nearby
