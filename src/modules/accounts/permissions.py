"""DRF permission classes gated on the caller's role profile."""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from modules.accounts.actors import get_request_actor
from modules.accounts.models import Role


class RolePermission(BasePermission):
    """Allow callers whose actor role is in ``roles`` (any role when empty)."""

    roles: tuple[str, ...] = ()
    message = "Your account role is not allowed to perform this action."

    def has_permission(self, request, view) -> bool:
        actor = get_request_actor(request)
        if actor is None:
            return False
        return not self.roles or actor.role in self.roles


class IsMarketplaceActor(RolePermission):
    message = "An active customer, supplier, admin or delivery profile is required."


class IsCustomer(RolePermission):
    roles = (Role.CUSTOMER,)


class IsSupplier(RolePermission):
    roles = (Role.SUPPLIER,)


class IsAdmin(RolePermission):
    roles = (Role.ADMIN,)


class IsDeliveryAssociate(RolePermission):
    roles = (Role.DELIVERY_ASSOCIATE,)


class IsAdminOrSupplier(RolePermission):
    roles = (Role.ADMIN, Role.SUPPLIER)


class IsCustomerOrSupplier(RolePermission):
    roles = (Role.CUSTOMER, Role.SUPPLIER)


class IsOrderParty(RolePermission):
    roles = (Role.CUSTOMER, Role.SUPPLIER, Role.ADMIN)
