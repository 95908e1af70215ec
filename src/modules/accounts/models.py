"""Role profiles bound one-to-one to Django auth users.

A user acts through exactly one active profile.  Profiles carry the
contact data used by notifications; ``DeliveryAssociate`` additionally
carries its last known position for radius queries.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class Role(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    SUPPLIER = "supplier", "Supplier"
    ADMIN = "admin", "Admin"
    DELIVERY_ASSOCIATE = "deliveryAssociate", "Delivery Associate"


# Tag stored in ``OrderStatusHistory.updated_by_model``
ROLE_MODEL_TAGS: dict[str, str] = {
    Role.CUSTOMER: "Customer",
    Role.SUPPLIER: "Supplier",
    Role.ADMIN: "Admin",
    Role.DELIVERY_ASSOCIATE: "DeliveryAssociate",
}


class AccountProfile(BaseModel):
    """Common contact fields of every role profile."""

    ROLE: str = ""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="%(class)s_profile",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class Customer(AccountProfile):
    ROLE = Role.CUSTOMER

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]


class Supplier(AccountProfile):
    ROLE = Role.SUPPLIER

    business_name = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "suppliers"
        ordering = ["-created_at"]


class Admin(AccountProfile):
    ROLE = Role.ADMIN

    class Meta:
        db_table = "admins"
        ordering = ["-created_at"]


class DeliveryAssociate(AccountProfile):
    ROLE = Role.DELIVERY_ASSOCIATE

    vehicle_type = models.CharField(max_length=50, blank=True, default="")
    is_available = models.BooleanField(default=True)
    latitude = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
    )
    longitude = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
    )

    class Meta:
        db_table = "delivery_associates"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["latitude", "longitude"],
                name="delivery_assoc_location_idx",
            ),
        ]
