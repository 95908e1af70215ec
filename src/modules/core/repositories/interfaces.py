"""Generic repository contract.

Services receive repositories through their constructors and only talk
to these abstractions; the Django ORM stays behind the concrete classes.
Look-ups by id return ``None`` for unknown or malformed ids instead of
raising, so each service picks its own ``NotFound`` subclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

from django.db import models

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Live entity with primary key ``id`` or ``None``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """Live entities, narrowed by ORM-style ``filters``."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist ``entity`` and return it."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete by id; ``False`` when nothing matched."""
