"""Account domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFound


class DeliveryAssociateNotFound(NotFound):
    default_code = "delivery_associate_not_found"
    default_detail = "Delivery associate not found."
