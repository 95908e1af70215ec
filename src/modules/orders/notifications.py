"""Notification dispatch.

``notify`` queues an email or SMS for the ``orders.send_notification``
Celery task, which owns retries and backoff.  Callers never see delivery
errors: ``notify`` returns ``False`` and logs instead of raising.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

import structlog

logger = structlog.get_logger(__name__)

EMAIL = "email"
SMS = "sms"
CHANNELS = frozenset({EMAIL, SMS})

# template -> (subject, body); formatted with the notification payload
TEMPLATES: Dict[str, Tuple[str, str]] = {
    "order_confirmation": (
        "Order Confirmation",
        "Your order {order_number} has been placed successfully!\n"
        "Total: {total_amount}",
    ),
    "new_order": (
        "New Order Received",
        "You have received a new order {order_number}.",
    ),
    "order_status_changed": (
        "Order {order_number} is now {new_status}",
        "Your order {order_number} moved from {old_status} to {new_status}.",
    ),
    "order_returned": (
        "Order #{order_number} Return Requested",
        "Order Return Requested\n"
        "Order ID: {order_number}\n"
        "Customer: {customer_name} ({customer_email})\n"
        "Reason: {reason}\n"
        "Date: {date}",
    ),
    "delivery_assigned": (
        "",
        "You have been assigned order {order_number} for delivery to "
        "{city}.",
    ),
}


class _Defaulting(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(template: str, payload: Mapping[str, Any]) -> Tuple[str, str]:
    """Format ``template`` with ``payload``; missing keys render empty."""
    subject, body = TEMPLATES[template]
    values = _Defaulting(payload)
    return subject.format_map(values), body.format_map(values)


def notify(channel: str, recipient: str, template: str, payload: Mapping[str, Any]) -> bool:
    """Queue a notification; ``True`` when it was handed to the task queue."""
    log = logger.bind(channel=channel, template=template)
    if channel not in CHANNELS or template not in TEMPLATES:
        log.error("notification.rejected", reason="unknown channel or template")
        return False
    if not recipient:
        log.info("notification.skipped", reason="no recipient")
        return False

    from modules.orders.tasks import send_notification

    try:
        send_notification.delay(channel, recipient, template, dict(payload))
    except Exception as exc:
        log.error("notification.enqueue_failed", error=str(exc))
        return False
    log.info("notification.queued")
    return True
