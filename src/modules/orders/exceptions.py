"""Order domain exceptions.

Raised by the service layer when business rules are violated.  Each one
subclasses a core error kind, so the API exception handler renders it with
the right HTTP status; the views never translate them by hand.
"""

from __future__ import annotations

from typing import Any

from modules.core.exceptions import (
    Conflict,
    Forbidden,
    InternalError,
    NotFound,
    ValidationFailed,
)


class OrderNotFound(NotFound):
    """The requested order does not exist or has been soft-deleted."""

    default_code = "order_not_found"
    default_detail = "Order not found."


class NotOrderParticipant(Forbidden):
    """The caller is neither customer, supplier, admin nor assigned associate."""

    default_code = "not_order_participant"
    default_detail = "You are not a participant of this order."


class InvalidOrderInput(ValidationFailed):
    default_code = "invalid_order_input"


class InsufficientStock(Conflict):
    """Not enough stock to fulfil an item; ``product`` names the product."""

    default_code = "insufficient_stock"

    def __init__(self, product: str, detail: str | None = None, **extra: Any) -> None:
        super().__init__(
            detail or f"Insufficient stock for product '{product}'.",
            product=product,
            **extra,
        )


class InactiveProduct(Conflict):
    default_code = "product_inactive"


class InvalidOrderTransition(Conflict):
    """The role transition table does not allow ``from_status -> to_status``."""

    default_code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str, role: str) -> None:
        super().__init__(
            f"Role '{role}' cannot move an order from '{from_status}' "
            f"to '{to_status}'.",
            from_status=str(from_status),
            to_status=str(to_status),
            role=str(role),
        )


class InvalidDeliveryTransition(Conflict):
    default_code = "invalid_delivery_transition"

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Delivery status cannot move from '{from_status or 'unassigned'}' "
            f"to '{to_status}'.",
            from_status=str(from_status),
            to_status=str(to_status),
        )


class ConcurrentOrderUpdate(Conflict):
    """The order changed between read and write; the client may retry."""

    default_code = "concurrent_update"
    default_detail = "The order was modified concurrently. Please retry."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, retryable=True)


class AlreadyAssigned(Conflict):
    default_code = "already_assigned"
    default_detail = "Order is already assigned to a delivery associate."


class OrderNotAssignable(Conflict):
    default_code = "not_assignable"
    default_detail = "Order is not available for assignment."


class InvoiceNotEligible(Conflict):
    default_code = "invoice_not_eligible"
    default_detail = (
        "Invoice can only be generated for delivered orders or paid online payments."
    )


class InvoiceGenerationFailed(InternalError):
    default_code = "invoice_generation_failed"
    default_detail = "Failed to generate invoice."


class InvoiceNotFound(NotFound):
    default_code = "invoice_not_found"
    default_detail = "Invoice not found for this order."


class HistoryIsAppendOnly(InternalError):
    default_code = "history_append_only"
