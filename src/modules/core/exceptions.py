"""Domain error taxonomy and the DRF exception handler.

Every module raises subclasses of the five base errors below.  The
service layer never builds HTTP responses; ``api_exception_handler``
renders domain errors, DRF errors and Pydantic validation errors in a
single shape::

    {"type": "<kind>", "errors": [{"code": "...", "detail": "...", ...}]}
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class DomainError(Exception):
    """Base error carrying a stable ``kind``, HTTP status and machine code.

    Keyword arguments beyond ``code`` become extra keys of the rendered
    error entry (e.g. ``from_status`` / ``to_status`` / ``role``).
    """

    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "error"
    default_detail = "An unexpected error occurred."

    def __init__(
        self, detail: Optional[str] = None, *, code: Optional[str] = None, **extra: Any
    ) -> None:
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        self.extra = extra
        super().__init__(self.detail)

    def as_error(self) -> Dict[str, Any]:
        return {"code": self.code, "detail": self.detail, **self.extra}


class ValidationFailed(DomainError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid"
    default_detail = "Invalid input."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        errors: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(detail, **kwargs)
        self.errors = errors

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> ValidationFailed:
        errors = [
            {
                "code": "invalid",
                "detail": error["msg"],
                "attr": ".".join(str(part) for part in error["loc"]) or None,
            }
            for error in exc.errors()
        ]
        return cls(errors=errors)


class NotFound(DomainError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "Not found."


class Forbidden(DomainError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "permission_denied"
    default_detail = "You are not allowed to perform this action."


class Conflict(DomainError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"
    default_detail = "The request conflicts with the current state."


class InternalError(DomainError):
    pass


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------

_STATUS_KINDS = {
    status.HTTP_400_BAD_REQUEST: "validation_error",
    status.HTTP_401_UNAUTHORIZED: "not_authenticated",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_429_TOO_MANY_REQUESTS: "throttled",
}


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """Render every handled error as ``{"type", "errors"}``.

    Unknown exceptions return ``None`` so Django's 500 handling applies.
    """
    if isinstance(exc, PydanticValidationError):
        exc = ValidationFailed.from_pydantic(exc)

    if isinstance(exc, DomainError):
        errors = getattr(exc, "errors", None) or [exc.as_error()]
        log = logger.warning if exc.status_code < 500 else logger.error
        log("api.domain_error", kind=exc.kind, code=exc.code, detail=exc.detail)
        return Response(
            {"type": exc.kind, "errors": errors},
            status=exc.status_code,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    kind = _STATUS_KINDS.get(response.status_code)
    if kind is None:
        kind = "internal" if response.status_code >= 500 else "client_error"

    response.data = {
        "type": kind,
        "errors": _flatten_details(exc.get_full_details()),
    }
    return response


def _flatten_details(details: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(details, dict) and set(details) == {"message", "code"}:
        error = {"code": details["code"], "detail": str(details["message"])}
        if attr:
            error["attr"] = attr
        return [error]
    if isinstance(details, dict):
        flattened: List[Dict[str, Any]] = []
        for key, value in details.items():
            flattened.extend(_flatten_details(value, f"{attr}.{key}" if attr else key))
        return flattened
    if isinstance(details, list):
        flattened = []
        for index, value in enumerate(details):
            is_leaf = isinstance(value, dict) and set(value) == {"message", "code"}
            child_attr = attr if is_leaf or not attr else f"{attr}.{index}"
            flattened.extend(_flatten_details(value, child_attr))
        return flattened
    return [{"code": "error", "detail": str(details)}]
