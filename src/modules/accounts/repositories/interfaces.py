"""Account repository interface.

Look-ups the order services need about the four role profiles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from modules.accounts.models import Admin, Customer, DeliveryAssociate, Supplier


class IAccountRepository(ABC):
    """Repository contract for role profiles."""

    @abstractmethod
    def get_customer(self, id: str) -> Optional[Customer]:
        """Retrieve a customer profile by primary key."""

    @abstractmethod
    def get_supplier(self, id: str) -> Optional[Supplier]:
        """Retrieve a supplier profile by primary key."""

    @abstractmethod
    def get_delivery_associate(self, id: str) -> Optional[DeliveryAssociate]:
        """Retrieve an active delivery associate by primary key."""

    @abstractmethod
    def list_admins(self) -> List[Admin]:
        """Return every active admin."""

    @abstractmethod
    def find_nearby_associates(
        self, latitude: float, longitude: float, max_distance_m: float
    ) -> List[DeliveryAssociate]:
        """Available associates within ``max_distance_m``, nearest first."""
