"""Invoice generation.

An order is invoiceable once delivered, or once paid through any method
other than cash on delivery.  The stored ``invoice_url`` is written exactly
once through a conditional UPDATE, so repeated or concurrent requests all
see the same document.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO, TYPE_CHECKING, Optional, Tuple
from urllib.parse import unquote

import structlog
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone
from django.utils.module_loading import import_string

from modules.accounts.models import Role
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.exceptions import (
    InvoiceGenerationFailed,
    InvoiceNotEligible,
    InvoiceNotFound,
    NotOrderParticipant,
    OrderNotFound,
)

if TYPE_CHECKING:
    from modules.accounts.actors import Actor
    from modules.accounts.models import Customer, Supplier
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def should_generate_invoice(order: Order) -> bool:
    if order.status == OrderStatus.DELIVERED:
        return True
    return (
        order.payment_method != PaymentMethod.CASH_ON_DELIVERY
        and order.payment_status == PaymentStatus.PAID
    )


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


class InvoiceGenerator(ABC):
    """Renders an invoice document and stores it somewhere addressable."""

    @abstractmethod
    def generate(self, order: Order, customer: Customer, supplier: Supplier) -> str:
        """Store the invoice and return its URL."""

    @abstractmethod
    def open(self, url: str) -> IO[bytes]:
        """Open a previously generated invoice for reading."""


class TextInvoiceGenerator(InvoiceGenerator):
    """Plain-text invoice kept in Django's default file storage."""

    directory = "invoices"

    def storage_name(self, order: Order) -> str:
        return f"{self.directory}/invoice-{order.order_number}.txt"

    def render(self, order: Order, customer: Customer, supplier: Supplier) -> str:
        lines = [
            "INVOICE",
            f"Order: {order.order_number}",
            f"Date: {timezone.localtime(order.created_at):%Y-%m-%d %H:%M}",
            "",
            f"Supplier: {supplier.business_name or supplier.name} <{supplier.email}>",
            f"Customer: {customer.name} <{customer.email}>",
            "Ship to: "
            f"{order.shipping_street}, {order.shipping_city}, {order.shipping_state} "
            f"{order.shipping_postal_code}, {order.shipping_country}",
            "",
            "Items:",
        ]
        for item in order.items.select_related("product"):
            variation = (
                f" ({item.variation_name}: {item.variation_value})"
                if item.variation_name
                else ""
            )
            lines.append(
                f"  {item.product.name}{variation} x{item.quantity} "
                f"@ {item.discounted_price} = {item.total_price}"
            )
        lines += [
            "",
            f"Subtotal: {order.subtotal}",
            f"Discount: -{order.discount_amount}",
            f"Taxes: {order.taxes}",
            f"Delivery: {order.delivery_charge}",
            f"Total: {order.total_amount}",
            f"Payment: {order.get_payment_method_display()} ({order.payment_status})",
        ]
        return "\n".join(lines) + "\n"

    def generate(self, order: Order, customer: Customer, supplier: Supplier) -> str:
        name = self.storage_name(order)
        if default_storage.exists(name):
            default_storage.delete(name)
        saved = default_storage.save(
            name, ContentFile(self.render(order, customer, supplier).encode("utf-8"))
        )
        return default_storage.url(saved)

    def open(self, url: str) -> IO[bytes]:
        name = unquote(url)
        if name.startswith(settings.MEDIA_URL):
            name = name[len(settings.MEDIA_URL):]
        return default_storage.open(name.lstrip("/"), "rb")


def get_invoice_generator() -> InvoiceGenerator:
    return import_string(settings.ORDER_INVOICE_GENERATOR)()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class InvoiceService:
    """Explicit and automatic invoice generation for orders."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        generator: Optional[InvoiceGenerator] = None,
    ) -> None:
        self._order_repo = order_repository
        self._generator = generator or get_invoice_generator()

    def generate(self, actor: Actor, order_id: str) -> str:
        """Return the order's invoice URL, generating it on first request.

        Raises:
            OrderNotFound: order does not exist.
            NotOrderParticipant: caller is not the order's customer or
                supplier, nor an admin.
            InvoiceNotEligible: order is neither delivered nor paid online.
            InvoiceGenerationFailed: the generator failed.
        """
        order = self._get_owned_order(actor, order_id)
        if not should_generate_invoice(order):
            raise InvoiceNotEligible()
        if order.invoice_url:
            return order.invoice_url

        try:
            return self._generate_and_store(order)
        except Exception as exc:
            logger.error(
                "invoice.generation_failed", order_id=str(order.id), error=str(exc)
            )
            raise InvoiceGenerationFailed() from exc

    def auto_generate(self, order_id: str) -> Optional[str]:
        """Generate the invoice if the order qualifies; failures are only logged."""
        order = self._order_repo.get_by_id(str(order_id))
        if order is None or order.invoice_url or not should_generate_invoice(order):
            return None
        try:
            return self._generate_and_store(order)
        except Exception as exc:
            logger.error(
                "invoice.auto_generation_failed",
                order_id=str(order_id),
                error=str(exc),
            )
            return None

    def open(self, actor: Actor, order_id: str) -> Tuple[str, IO[bytes]]:
        """Return ``(filename, file)`` of the stored invoice."""
        order = self._get_owned_order(actor, order_id)
        if not order.invoice_url:
            raise InvoiceNotFound()
        try:
            handle = self._generator.open(order.invoice_url)
        except FileNotFoundError as exc:
            logger.warning("invoice.file_missing", order_id=str(order.id))
            raise InvoiceNotFound("Invoice file not found.") from exc
        return f"invoice-{order.order_number}.txt", handle

    # ------------------------------------------------------------------

    def _get_owned_order(self, actor: Actor, order_id: str) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        owns = (
            actor.role == Role.ADMIN
            or (actor.role == Role.CUSTOMER and order.customer_id == actor.id)
            or (actor.role == Role.SUPPLIER and order.supplier_id == actor.id)
        )
        if not owns:
            raise NotOrderParticipant(
                "You are not authorized to access the invoice of this order."
            )
        return order

    def _generate_and_store(self, order: Order) -> str:
        url = self._generator.generate(order, order.customer, order.supplier)
        if self._order_repo.set_invoice_url_if_empty(order.id, url):
            order.invoice_url = url
            logger.info("invoice.generated", order_id=str(order.id), url=url)
            return url

        stored = self._order_repo.get_by_id(str(order.id))
        logger.info("invoice.already_generated", order_id=str(order.id))
        return stored.invoice_url if stored else url
