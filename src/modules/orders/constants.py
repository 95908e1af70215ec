"""Order domain constants.

Status choices plus the role-indexed transition table of the order state
machine and the delivery sub-status table.  Both tables are plain data:
``role -> from_status -> allowed target statuses``.
"""

from django.db import models

from modules.accounts.models import Role


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    RETURNED = "returned", "Returned"
    DAMAGED = "damaged", "Damaged"


class DeliveryStatus(models.TextChoices):
    ASSIGNED = "assigned", "Assigned"
    PICKED_UP = "picked_up", "Picked up"
    ON_THE_WAY = "on_the_way", "On the way"
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = "credit_card", "Credit card"
    DEBIT_CARD = "debit_card", "Debit card"
    CASH_ON_DELIVERY = "cash_on_delivery", "Cash on delivery"
    UPI = "upi", "UPI"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


S = OrderStatus

ROLE_TRANSITIONS: dict[str, dict[str, frozenset[str]]] = {
    Role.CUSTOMER: {
        S.PENDING: frozenset({S.CANCELLED}),
        S.DELIVERED: frozenset({S.RETURNED}),
    },
    Role.SUPPLIER: {
        S.PENDING: frozenset({S.PENDING, S.CANCELLED}),
        S.PROCESSING: frozenset({S.PROCESSING, S.CANCELLED}),
        S.OUT_FOR_DELIVERY: frozenset({S.CANCELLED, S.DAMAGED}),
    },
    Role.ADMIN: {
        S.PENDING: frozenset({S.PROCESSING, S.CANCELLED}),
        S.PROCESSING: frozenset({S.OUT_FOR_DELIVERY, S.CANCELLED}),
        S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.CANCELLED, S.DAMAGED}),
        S.DELIVERED: frozenset({S.RETURNED}),
        S.CANCELLED: frozenset({S.PENDING}),
        S.RETURNED: frozenset({S.PROCESSING}),
        S.DAMAGED: frozenset(),
    },
    Role.DELIVERY_ASSOCIATE: {
        S.OUT_FOR_DELIVERY: frozenset({S.OUT_FOR_DELIVERY}),
    },
}

D = DeliveryStatus

DELIVERY_TRANSITIONS: dict[str, frozenset[str]] = {
    D.ASSIGNED: frozenset({D.PICKED_UP}),
    D.PICKED_UP: frozenset({D.ON_THE_WAY}),
    D.ON_THE_WAY: frozenset({D.DELIVERED, D.FAILED}),
    D.DELIVERED: frozenset(),
    D.FAILED: frozenset(),
}

# Orders a delivery associate may pick up
ASSIGNABLE_STATUSES: frozenset[str] = frozenset({S.PENDING, S.PROCESSING})

ORDER_NUMBER_MAX_RETRIES = 5

ORDER_CREATED_NOTE = "Order created"
DEFAULT_RETURN_REASON = "No reason provided"
DEFAULT_DELIVERED_NOTE = "Delivered by delivery associate"
SYSTEM_HISTORY_NOTE = "Status recorded by system"

DEFAULT_NEARBY_DISTANCE_M = 10_000
