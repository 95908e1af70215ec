"""Signals keeping the order status history in step with ``Order.status``."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, cast

from django.db.models.signals import post_save
from django.dispatch import receiver

from modules.orders.constants import SYSTEM_HISTORY_NOTE
from modules.orders.models import Order, OrderStatusHistory


class _HistoryAware(Protocol):
    _pending_history: Optional[Dict[str, Any]]


@receiver(post_save, sender=Order)
def _append_status_history(sender, instance: Order, created: bool, **kwargs) -> None:
    """Append the transition staged by the state machine, if any.

    Otherwise append a system entry whenever the saved status differs from
    the last recorded one (including the very first save).
    """
    pending = getattr(cast(_HistoryAware, instance), "_pending_history", None)
    if hasattr(instance, "_pending_history"):
        delattr(instance, "_pending_history")

    if pending is not None and pending["status"] == instance.status:
        OrderStatusHistory.objects.create(
            order=instance,
            status=instance.status,
            updated_by=pending.get("updated_by"),
            updated_by_model=pending.get("updated_by_model", ""),
            note=pending.get("note", ""),
        )
        return

    last_status = None
    if not created:
        last_status = (
            OrderStatusHistory.objects.filter(order=instance)
            .order_by("-created_at", "-id")
            .values_list("status", flat=True)
            .first()
        )
    if last_status != instance.status:
        OrderStatusHistory.objects.create(
            order=instance,
            status=instance.status,
            note=SYSTEM_HISTORY_NOTE,
        )
