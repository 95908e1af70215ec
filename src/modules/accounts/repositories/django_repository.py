"""Django ORM implementation of the Account repository.

Methods return ``None`` for missing or malformed ids; the service layer
decides which domain error that becomes.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from django.core.exceptions import ValidationError

from modules.accounts.models import Admin, Customer, DeliveryAssociate, Supplier
from modules.accounts.repositories.interfaces import IAccountRepository
from modules.core.geo import bounding_box, haversine_distance_m

logger = structlog.get_logger(__name__)


class AccountDjangoRepository(IAccountRepository):
    """Concrete Account repository backed by Django ORM."""

    def get_customer(self, id: str) -> Optional[Customer]:
        try:
            return Customer.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_supplier(self, id: str) -> Optional[Supplier]:
        try:
            return Supplier.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_delivery_associate(self, id: str) -> Optional[DeliveryAssociate]:
        try:
            return DeliveryAssociate.objects.filter(id=id, is_active=True).first()
        except (ValueError, ValidationError):
            return None

    def list_admins(self) -> List[Admin]:
        return list(Admin.objects.filter(is_active=True))

    def find_nearby_associates(
        self, latitude: float, longitude: float, max_distance_m: float
    ) -> List[DeliveryAssociate]:
        """Bounding-box prefilter in SQL, exact haversine distance in Python.

        Each returned associate carries a ``distance_m`` attribute.
        """
        box = bounding_box(latitude, longitude, max_distance_m)
        candidates = DeliveryAssociate.objects.filter(
            is_active=True,
            is_available=True,
            latitude__range=(box.min_lat, box.max_lat),
            longitude__range=(box.min_lng, box.max_lng),
        )

        nearby = []
        for associate in candidates:
            distance = haversine_distance_m(
                latitude, longitude, associate.latitude, associate.longitude
            )
            if distance <= max_distance_m:
                associate.distance_m = round(distance, 1)
                nearby.append(associate)
        nearby.sort(key=lambda a: a.distance_m)

        logger.info(
            "accounts.nearby_associates",
            candidates=len(candidates),
            matched=len(nearby),
            max_distance_m=max_distance_m,
        )
        return nearby
