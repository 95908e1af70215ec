"""Order repositories package."""

from modules.orders.repositories.django_repository import (
    CartDjangoRepository,
    OrderDjangoRepository,
)
from modules.orders.repositories.interfaces import ICartRepository, IOrderRepository

__all__ = [
    "CartDjangoRepository",
    "ICartRepository",
    "IOrderRepository",
    "OrderDjangoRepository",
]
