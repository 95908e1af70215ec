from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders import signals  # noqa: F401
        from modules.orders.events import (
            DeliveryAssigned,
            OrderCreated,
            OrderReturned,
            OrderStatusChanged,
        )
        from modules.orders.handlers import (
            delivery_assigned_handler,
            order_created_handler,
            order_returned_handler,
            order_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(OrderReturned, order_returned_handler)
        event_bus.subscribe(DeliveryAssigned, delivery_assigned_handler)
