"""Resolution of the authenticated user into an acting role profile."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from django.core.exceptions import ObjectDoesNotExist

from modules.accounts.models import ROLE_MODEL_TAGS, Role


@dataclass(frozen=True)
class Actor:
    """Who performs an operation: the profile id and its role."""

    id: UUID
    role: str

    @property
    def model_tag(self) -> str:
        return ROLE_MODEL_TAGS[self.role]

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# Checked in order; the first active profile wins.
_PROFILE_ATTRS = (
    ("admin_profile", Role.ADMIN),
    ("supplier_profile", Role.SUPPLIER),
    ("deliveryassociate_profile", Role.DELIVERY_ASSOCIATE),
    ("customer_profile", Role.CUSTOMER),
)


def actor_from_user(user: Any) -> Optional[Actor]:
    """Return the ``Actor`` for ``user`` or ``None`` when it has no active profile."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    for attr, role in _PROFILE_ATTRS:
        try:
            profile = getattr(user, attr)
        except ObjectDoesNotExist:
            continue
        if profile.is_active:
            return Actor(id=profile.id, role=role)
    return None


def get_request_actor(request: Any) -> Optional[Actor]:
    """``actor_from_user`` memoised on the request object."""
    if not hasattr(request, "_marketplace_actor"):
        request._marketplace_actor = actor_from_user(getattr(request, "user", None))
    return request._marketplace_actor
