"""Domain events for the Orders bounded context.

Extra fields are plain strings so the events survive the JSON round-trip
through the outbox table.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    order_number: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every accepted status transition."""

    order_number: str = ""
    old_status: str = ""
    new_status: str = ""
    changed_by: str = ""


@dataclass(frozen=True)
class OrderReturned(DomainEvent):
    """Raised when a customer or admin marks an order returned."""

    order_number: str = ""
    reason: str = ""


@dataclass(frozen=True)
class DeliveryAssigned(DomainEvent):
    """Raised when a delivery associate is attached to an order."""

    order_number: str = ""
    associate_id: str = ""
