"""
Order Service
Checkout and order fulfilment flow

Handles:
- Order creation (color resolution, stock checks)
- Status changes along the fulfilment flow
- Approval (reserves stock) and refusal/cancellation (restores stock)
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from app.domain.order import (
    OrderStatus,
    STOCK_RESTORING_STATUSES,
    Order,
    OrderCreate,
    OrderItem,
    OrderNotFoundError,
    OrderStatusError,
    check_transition,
    generate_order_id,
    generate_order_number,
)
from app.domain.product import DEFAULT_COLOR, DEFAULT_SIZE, StockError
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository
from app.services.product_service import ProductService

logger = logging.getLogger(__name__)


class OrderValidationError(ValueError):
    """Raised when a checkout payload cannot become an order"""


@dataclass
class StatusChange:
    """Result of a status operation; emails are only sent when changed is True"""
    order: Order
    changed: bool


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """Service for order business logic"""

    def __init__(
        self,
        order_repo: OrderRepository = None,
        product_repo: ProductRepository = None
    ):
        self.order_repo = order_repo or OrderRepository()
        self.products = ProductService(product_repo or ProductRepository())

    def _get(self, order_id: str) -> Order:
        order = self.order_repo.find_by_id(order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        return order

    def _resolve_color(self, item: OrderItem) -> str:
        """Replace a missing/"default" color with the product's first color"""
        if item.color and item.color != DEFAULT_COLOR:
            return item.color
        product = self.products.repo.find_by_id(item.product_id)
        if product and product.first_color:
            return product.first_color
        return DEFAULT_COLOR

    def create_order(self, data: OrderCreate) -> Order:
        """
        Validate a checkout payload, check stock and store a pending order

        Stock is only reserved when an admin approves the order.

        Raises:
            OrderValidationError: missing email/items/address or insufficient stock
        """
        if not data.email or not data.items:
            raise OrderValidationError("Email and items are required")

        if not data.address or not data.address.is_complete:
            raise OrderValidationError("Complete address is required")

        items: List[OrderItem] = []
        for item in data.items:
            color = self._resolve_color(item)
            size = item.size or DEFAULT_SIZE
            stock_check = self.products.check_stock(item.product_id, size, color, item.quantity)
            if not stock_check.available:
                raise OrderValidationError(f"Insufficient stock for {item.name}: {stock_check.message}")
            items.append(item.model_copy(update={"color": color, "size": size}))

        now = _now()
        order_kwargs = {}
        if data.shipping:
            order_kwargs["shipping"] = data.shipping
        if data.payment:
            order_kwargs["payment"] = data.payment

        order = Order(
            id=generate_order_id(),
            order_number=generate_order_number(),
            email=data.email.strip().lower(),
            user_id=data.user_id or None,
            items=items,
            address=data.address,
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
            **order_kwargs
        )
        saved = self.order_repo.save(order)
        logger.info(f"Created order {saved.order_number} for {saved.email}")
        return saved

    def _restore_stock(self, order: Order) -> None:
        """Put approved units back; failures are logged and do not block the change"""
        self._put_back(order, order.items)

    def _put_back(self, order: Order, items: List[OrderItem]) -> None:
        for item in items:
            try:
                self.products.increase_stock(item.product_id, item.size, item.color, item.quantity)
            except StockError as e:
                logger.error(f"Error restoring stock for order {order.id}: {e}")

    def update_status(
        self,
        order_id: str,
        status: str,
        admin_status: Optional[str] = None,
        shipper_name: Optional[str] = None,
        fields_set: frozenset = frozenset()
    ) -> StatusChange:
        """
        Move an order along the status flow

        admin_status/shipper_name are only written when named in fields_set,
        so an explicit null clears them while an omitted field keeps them.

        Raises:
            OrderNotFoundError, OrderStatusError
        """
        order = self._get(order_id)
        check_transition(order.status, status)

        if order.status == OrderStatus.APPROVED and status in STOCK_RESTORING_STATUSES:
            self._restore_stock(order)

        changed = order.status != status
        order.status = status
        if "admin_status" in fields_set:
            order.admin_status = admin_status
        if "shipper_name" in fields_set:
            order.shipper_name = shipper_name
        if status == OrderStatus.CANCELLED and changed:
            order.cancelled_at = _now()
            order.cancelled_by = "admin"
        order.updated_at = _now()

        return StatusChange(order=self.order_repo.save(order), changed=changed)

    def approve(self, order_id: str) -> StatusChange:
        """
        Approve an order and reserve its stock

        Approving an already approved order is a no-op. If any item lacks
        stock, units already taken for earlier items are put back.

        Raises:
            OrderNotFoundError, OrderStatusError
        """
        order = self._get(order_id)

        if order.status == OrderStatus.DELIVERED:
            raise OrderStatusError("Cannot approve order after it is delivered")
        if order.status == OrderStatus.APPROVED:
            return StatusChange(order=order, changed=False)

        reserved: List[OrderItem] = []
        try:
            for item in order.items:
                self.products.decrease_stock(item.product_id, item.size, item.color, item.quantity)
                reserved.append(item)
        except StockError as e:
            self._put_back(order, reserved)
            raise OrderStatusError(f"Stock update failed: {e}")

        order.status = OrderStatus.APPROVED
        order.updated_at = _now()
        return StatusChange(order=self.order_repo.save(order), changed=True)

    def refuse(self, order_id: str) -> StatusChange:
        """
        Refuse an order; a previously approved order gets its stock back

        Raises:
            OrderNotFoundError, OrderStatusError
        """
        order = self._get(order_id)

        if order.status == OrderStatus.DELIVERED:
            raise OrderStatusError("Cannot refuse order after it is delivered")

        changed = order.status != OrderStatus.REFUSED
        if order.status == OrderStatus.APPROVED:
            self._restore_stock(order)

        order.status = OrderStatus.REFUSED
        order.updated_at = _now()
        return StatusChange(order=self.order_repo.save(order), changed=changed)

    def cancel(self, order_id: str, reason: Optional[str], cancelled_by: str) -> Order:
        """
        Cancel an order

        Customers may only cancel pending orders; admins may cancel at any
        time. Approved orders get their stock back.

        Raises:
            OrderNotFoundError, OrderStatusError
        """
        order = self._get(order_id)

        if cancelled_by == "user" and order.status != OrderStatus.PENDING:
            raise OrderStatusError("You can only cancel orders before admin approval")

        if order.status == OrderStatus.APPROVED:
            self._restore_stock(order)

        now = _now()
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.cancelled_by = cancelled_by
        order.cancel_reason = reason
        order.updated_at = now

        saved = self.order_repo.save(order)
        logger.info(f"Order {saved.id} cancelled by {cancelled_by}")
        return saved
