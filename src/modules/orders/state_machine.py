"""Order and delivery state machines.

Both machines only validate and mutate an in-memory ``Order``; locking,
persistence and after-commit side effects belong to the services.  The
delivery machine composes with the order machine through a callback that
forces the primary status to ``delivered``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Optional

import structlog
from django.utils import timezone

from modules.accounts.models import Role
from modules.orders.constants import (
    DEFAULT_DELIVERED_NOTE,
    DEFAULT_RETURN_REASON,
    DELIVERY_TRANSITIONS,
    ROLE_TRANSITIONS,
    DeliveryStatus,
    OrderStatus,
)
from modules.orders.events import OrderReturned, OrderStatusChanged
from modules.orders.exceptions import (
    InvalidDeliveryTransition,
    InvalidOrderInput,
    InvalidOrderTransition,
    NotOrderParticipant,
)

if TYPE_CHECKING:
    from modules.accounts.actors import Actor
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


def is_participant(actor: Actor, order: Order) -> bool:
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.CUSTOMER:
        return order.customer_id == actor.id
    if actor.role == Role.SUPPLIER:
        return order.supplier_id == actor.id
    if actor.role == Role.DELIVERY_ASSOCIATE:
        return order.delivery_associate_id == actor.id
    return False


class OrderStateMachine:
    """Role-gated transitions over ``ROLE_TRANSITIONS``."""

    def __init__(
        self, transitions: Mapping[str, Mapping[str, frozenset]] = ROLE_TRANSITIONS
    ) -> None:
        self._transitions = transitions

    def allowed_targets(self, role: str, from_status: str) -> frozenset:
        return self._transitions.get(role, {}).get(from_status, frozenset())

    def can_transition(self, role: str, from_status: str, to_status: str) -> bool:
        return to_status in self.allowed_targets(role, from_status)

    def ensure_participant(self, actor: Actor, order: Order) -> None:
        if not is_participant(actor, order):
            logger.warning(
                "order.access_denied",
                order_id=str(order.id),
                actor_id=str(actor.id),
                role=actor.role,
            )
            raise NotOrderParticipant()

    def transition(self, order: Order, actor: Actor, to_status: str, note: str = "") -> None:
        """Apply ``to_status`` for ``actor`` or raise without touching ``order``.

        Raises:
            InvalidOrderInput: ``to_status`` is not a known status.
            InvalidOrderTransition: the role table forbids the move.
        """
        if to_status not in OrderStatus.values:
            raise InvalidOrderInput(f"Unknown order status '{to_status}'.")

        from_status = order.status
        if not self.can_transition(actor.role, from_status, to_status):
            logger.warning(
                "order.invalid_transition",
                order_id=str(order.id),
                from_status=from_status,
                to_status=to_status,
                role=actor.role,
            )
            raise InvalidOrderTransition(from_status, to_status, actor.role)

        self._apply(order, actor, to_status, note)

    def force_delivered(self, order: Order, actor: Actor, note: str = "") -> None:
        """Callback for the delivery machine: primary status becomes ``delivered``."""
        self._apply(order, actor, OrderStatus.DELIVERED, note or DEFAULT_DELIVERED_NOTE)

    def _apply(self, order: Order, actor: Actor, to_status: str, note: str) -> None:
        from_status = order.status
        now = timezone.now()

        order.status = to_status
        if to_status == OrderStatus.DELIVERED:
            order.delivered_at = now
        elif to_status == OrderStatus.CANCELLED:
            order.cancellation_reason = note
        elif to_status == OrderStatus.RETURNED:
            order.return_reason = note or DEFAULT_RETURN_REASON
        elif to_status == OrderStatus.DAMAGED:
            logger.warning(
                "order.marked_damaged",
                order_id=str(order.id),
                role=actor.role,
                actor_id=str(actor.id),
            )

        order._pending_history = {
            "status": to_status,
            "updated_by": actor.id,
            "updated_by_model": actor.model_tag,
            "note": note,
        }
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                old_status=str(from_status),
                new_status=str(to_status),
                changed_by=actor.model_tag,
            )
        )
        if to_status == OrderStatus.RETURNED:
            order.add_domain_event(
                OrderReturned(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    reason=order.return_reason,
                )
            )


class DeliveryStateMachine:
    """Delivery sub-status transitions over ``DELIVERY_TRANSITIONS``."""

    def __init__(
        self,
        on_delivered: Callable[[Order, Actor, str], None],
        transitions: Mapping[str, frozenset] = DELIVERY_TRANSITIONS,
    ) -> None:
        self._on_delivered = on_delivered
        self._transitions = transitions

    def can_transition(self, from_status: Optional[str], to_status: str) -> bool:
        return to_status in self._transitions.get(from_status or "", frozenset())

    def transition(self, order: Order, actor: Actor, to_status: str, note: str = "") -> None:
        if to_status not in DeliveryStatus.values:
            raise InvalidOrderInput(f"Unknown delivery status '{to_status}'.")

        from_status = order.delivery_status
        if not self.can_transition(from_status, to_status):
            logger.warning(
                "delivery.invalid_transition",
                order_id=str(order.id),
                from_status=from_status,
                to_status=to_status,
            )
            raise InvalidDeliveryTransition(from_status, to_status)

        order.delivery_status = to_status
        if to_status == DeliveryStatus.DELIVERED:
            self._on_delivered(order, actor, note)
