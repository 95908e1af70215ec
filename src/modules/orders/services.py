"""Order service layer (Use Cases).

Orchestrates order assembly, role-gated status transitions and the
per-role read models.  Every write is atomic: the service defines the
unit-of-work boundary, and side effects (invoice, notifications) only run
after the transaction commits.

Rules enforced:
- Only customers place orders; a checkout splits into one order per supplier.
- Stock is validated for every line before anything is written, then
  decremented with a conditional UPDATE; any failure rolls back the whole
  checkout.
- Status changes follow ``ROLE_TRANSITIONS`` and append one history entry.
- Concurrent writers are detected through the ``version`` column.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.accounts.models import Role
from modules.catalog.exceptions import ProductNotFound
from modules.catalog.models import ProductStatus
from modules.orders.constants import ORDER_CREATED_NOTE, OrderStatus
from modules.orders.events import OrderCreated
from modules.orders.exceptions import (
    ConcurrentOrderUpdate,
    InactiveProduct,
    InsufficientStock,
    NotOrderParticipant,
    OrderNotFound,
)
from modules.orders.invoicing import InvoiceService
from modules.orders.pricing import CouponPolicy, get_coupon_policy, price_line, price_order
from modules.orders.state_machine import OrderStateMachine

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.actors import Actor
    from modules.catalog.models import Product, ProductVariation
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import ICartRepository, IOrderRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _ResolvedLine:
    product: Product
    variation: Optional[ProductVariation]
    item: CreateOrderItemDTO


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and policies via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        cart_repository: ICartRepository,
        coupon_policy: Optional[CouponPolicy] = None,
        state_machine: Optional[OrderStateMachine] = None,
        invoice_service: Optional[InvoiceService] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._cart_repo = cart_repository
        self._coupon_policy = coupon_policy or get_coupon_policy()
        self._machine = state_machine or OrderStateMachine()
        self._invoices = invoice_service or InvoiceService(order_repository)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_orders(self, actor: Actor, dto: CreateOrderDTO) -> List[Order]:
        """Create one order per supplier found in the checkout.

        Steps:
        1. Resolve every product (and variation) and check stock.
        2. Group lines by supplier, preserving first-seen order.
        3. Per group: price, persist order + items + initial history, then
           decrement stock atomically.
        4. Clear the cart when requested.

        Raises:
            NotOrderParticipant: caller is not a customer.
            ProductNotFound: a product does not exist.
            InactiveProduct: a product is not for sale.
            InsufficientStock: a product or variation lacks stock.
        """
        if actor.role != Role.CUSTOMER:
            raise NotOrderParticipant("Only customers can place orders.")

        log = logger.bind(customer_id=str(actor.id), item_count=len(dto.items))
        log.info("order.creation_started")

        # 1. Validate everything before writing anything
        lines = [self._resolve_line(item) for item in dto.items]

        # 2. Group by supplier (dicts keep insertion order)
        groups: Dict[str, List[_ResolvedLine]] = {}
        for line in lines:
            groups.setdefault(str(line.product.supplier_id), []).append(line)

        # 3. One order per supplier
        estimated_delivery = timezone.now() + timedelta(
            days=settings.ORDER_ESTIMATED_DELIVERY_DAYS
        )
        address = dto.delivery_address
        orders: List[Order] = []
        for supplier_id, group in groups.items():
            priced = [
                (
                    line,
                    price_line(
                        line.product.price,
                        line.product.discounted_price,
                        line.variation.additional_price if line.variation else 0,
                        line.item.quantity,
                    ),
                )
                for line in group
            ]
            totals = price_order(
                (p.total_price for _, p in priced),
                is_express_delivery=dto.is_express_delivery,
                coupon_code=dto.coupon_code,
                coupon_policy=self._coupon_policy,
            )

            order = self._order_repo.create(
                {
                    "customer_id": actor.id,
                    "supplier_id": supplier_id,
                    "status": OrderStatus.PENDING,
                    "subtotal": totals.subtotal,
                    "coupon_code": dto.coupon_code or "",
                    "discount_amount": totals.discount_amount,
                    "taxes": totals.taxes,
                    "delivery_charge": totals.delivery_charge,
                    "payment_method": dto.payment_method,
                    "shipping_street": address.street,
                    "shipping_city": address.city,
                    "shipping_state": address.state,
                    "shipping_postal_code": address.postal_code,
                    "shipping_country": address.country,
                    "shipping_phone": address.phone,
                    "shipping_latitude": address.latitude,
                    "shipping_longitude": address.longitude,
                    "is_express_delivery": dto.is_express_delivery,
                    "notes": dto.notes,
                    "estimated_delivery_date": estimated_delivery,
                    "items": [
                        {
                            "product_id": line.product.id,
                            "quantity": line.item.quantity,
                            "unit_price": price.unit_price,
                            "discounted_price": price.discounted_price,
                            "variation_name": line.item.variation.name
                            if line.item.variation
                            else "",
                            "variation_value": line.item.variation.value
                            if line.item.variation
                            else "",
                        }
                        for line, price in priced
                    ],
                    "initial_history": {
                        "updated_by": actor.id,
                        "updated_by_model": actor.model_tag,
                        "note": ORDER_CREATED_NOTE,
                    },
                }
            )

            for line in group:
                decremented = self._product_repo.decrement_stock_atomic(
                    line.product.id, line.variation, line.item.quantity
                )
                if not decremented:
                    log.warning("order.stock_race_lost", product_id=str(line.product.id))
                    raise InsufficientStock(line.product.name)

            order.add_domain_event(
                OrderCreated(aggregate_id=order.id, order_number=order.order_number)
            )
            self._order_repo.save(order)
            orders.append(order)

            log.info(
                "order.created",
                order_id=str(order.id),
                order_number=order.order_number,
                supplier_id=supplier_id,
                total_amount=str(order.total_amount),
            )

        # 4. Cart
        if dto.clear_cart:
            self._cart_repo.clear(actor.id)

        log.info("order.checkout_completed", order_count=len(orders))
        return [self._order_repo.get_by_id(str(order.id)) or order for order in orders]

    @transaction.atomic
    def update_status(
        self,
        actor: Actor,
        order_id: str,
        new_status: str,
        note: str = "",
    ) -> Order:
        """Move an order to ``new_status`` on behalf of ``actor``.

        Holds a row lock and claims the optimistic version before writing.

        Raises:
            OrderNotFound: order does not exist.
            NotOrderParticipant: caller takes no part in the order.
            InvalidOrderTransition: the role table forbids the move.
            ConcurrentOrderUpdate: another writer changed the order first.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        self._machine.ensure_participant(actor, order)

        old_status = order.status
        self._machine.transition(order, actor, new_status, note)
        self.persist(order)

        logger.info(
            "order.status_updated",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
            role=actor.role,
        )
        self.schedule_auto_invoice(order)
        return self._order_repo.get_by_id(str(order.id))

    def persist(self, order: Order) -> Order:
        """Save ``order`` after claiming its version; raise when the claim fails."""
        if not self._order_repo.claim_version(order):
            logger.warning("order.concurrent_update", order_id=str(order.id))
            raise ConcurrentOrderUpdate()
        return self._order_repo.save(order)

    def schedule_auto_invoice(self, order: Order) -> None:
        transaction.on_commit(
            partial(self._invoices.auto_generate, str(order.id)), robust=True
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, actor: Actor, order_id: str) -> Order:
        """Raises ``OrderNotFound`` or ``NotOrderParticipant``."""
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        self._machine.ensure_participant(actor, order)
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """All orders (admin view), optionally filtered."""
        return self._order_repo.list(filters)

    def my_orders(self, actor: Actor) -> QuerySet:
        """Orders placed by a customer or received by a supplier."""
        if actor.role == Role.CUSTOMER:
            return self._order_repo.list({"customer_id": actor.id})
        if actor.role == Role.SUPPLIER:
            return self._order_repo.list({"supplier_id": actor.id})
        raise NotOrderParticipant("Only customers and suppliers have own orders.")

    def status_counts(self, actor: Actor) -> Dict[str, int]:
        if actor.role != Role.SUPPLIER:
            raise NotOrderParticipant("Only suppliers can view order counts.")
        return self._order_repo.status_counts(actor.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_line(self, item: CreateOrderItemDTO) -> _ResolvedLine:
        product = self._product_repo.get_by_id(str(item.product_id))
        if not product:
            raise ProductNotFound(f"Product {item.product_id} not found.")
        if product.status != ProductStatus.ACTIVE:
            raise InactiveProduct(f"Product '{product.name}' is not available.")
        if product.stock_quantity < item.quantity:
            raise InsufficientStock(
                product.name,
                f"Insufficient stock for product '{product.name}': requested "
                f"{item.quantity}, available {product.stock_quantity}.",
            )

        variation = None
        if item.variation is not None:
            variation = self._product_repo.find_variation(
                product, item.variation.name, item.variation.value
            )
            if variation is not None and variation.stock_quantity < item.quantity:
                raise InsufficientStock(
                    product.name,
                    f"Insufficient stock for '{product.name}' "
                    f"({variation.name}: {variation.value}).",
                )
        return _ResolvedLine(product=product, variation=variation, item=item)
