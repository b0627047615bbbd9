"""
Order Domain Models

Represents orders, their line items and the order status flow.
These are the single source of truth for order data structure.
"""
import random
import time
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.product import CamelModel, DEFAULT_SIZE


class OrderStatus:
    PENDING = "pending"
    AWAITING_PROCESSING = "awaiting_processing"
    ORDER_CONFIRMATION = "order_confirmation"
    APPROVED = "approved"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    REFUSED = "refused"
    CANCELLED = "cancelled"


# Position of each status in the fulfilment flow (cannot go backwards).
# approved shares a level with order_confirmation; refused and cancelled
# sit low so they never block forward progression.
STATUS_ORDER = {
    OrderStatus.PENDING: 0,
    OrderStatus.AWAITING_PROCESSING: 1,
    OrderStatus.ORDER_CONFIRMATION: 2,
    OrderStatus.APPROVED: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.DELIVERED: 4,
    OrderStatus.REFUSED: 1,
    OrderStatus.CANCELLED: 0,
}

# Transitions allowed regardless of the forward-only rule (admin overrides)
VALID_TRANSITIONS = {
    OrderStatus.APPROVED: [
        OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.REFUSED, OrderStatus.CANCELLED,
        OrderStatus.AWAITING_PROCESSING, OrderStatus.ORDER_CONFIRMATION,
    ],
    OrderStatus.REFUSED: [
        OrderStatus.AWAITING_PROCESSING, OrderStatus.ORDER_CONFIRMATION,
        OrderStatus.APPROVED, OrderStatus.CANCELLED,
    ],
    OrderStatus.ORDER_CONFIRMATION: [
        OrderStatus.APPROVED, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.REFUSED,
        OrderStatus.CANCELLED, OrderStatus.AWAITING_PROCESSING,
    ],
    OrderStatus.AWAITING_PROCESSING: [
        OrderStatus.ORDER_CONFIRMATION, OrderStatus.APPROVED, OrderStatus.SHIPPED,
        OrderStatus.DELIVERED, OrderStatus.REFUSED, OrderStatus.CANCELLED,
    ],
}

# Leaving approved for one of these puts the reserved units back in stock
STOCK_RESTORING_STATUSES = {
    OrderStatus.AWAITING_PROCESSING,
    OrderStatus.ORDER_CONFIRMATION,
    OrderStatus.REFUSED,
    OrderStatus.CANCELLED,
}


class OrderNotFoundError(Exception):
    def __init__(self, order_id: str):
        super().__init__("Order not found")
        self.order_id = order_id


class OrderStatusError(Exception):
    """Raised for a status change the order flow does not allow"""


def check_transition(current: str, new: str) -> None:
    """
    Validate a status change, raising OrderStatusError when it is not allowed.
    """
    if current == OrderStatus.DELIVERED:
        raise OrderStatusError("Cannot change status after order is delivered")

    if new not in STATUS_ORDER:
        raise OrderStatusError(f'Unknown order status "{new}"')

    if new == OrderStatus.CANCELLED:
        return
    if new in VALID_TRANSITIONS.get(current, []):
        return
    if STATUS_ORDER[new] >= STATUS_ORDER.get(current, 0):
        return

    raise OrderStatusError(
        f'Cannot change status from "{current}" to "{new}". '
        "Status can only move forward in the order flow."
    )


def generate_order_id() -> str:
    return str(int(time.time() * 1000))


def generate_order_number() -> str:
    return f"TT-{int(time.time() * 1000)}-{random.randint(0, 999)}"


class OrderItem(CamelModel):
    """A line item as ordered (snapshot of product data at order time)"""
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    size: str = DEFAULT_SIZE
    color: Optional[str] = None
    image: str = ""

    @field_validator("size", mode="before")
    @classmethod
    def _default_size(cls, value):
        return value or DEFAULT_SIZE


class OrderAddress(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile_number: Optional[str] = None
    street_address: Optional[str] = None
    country: str = "Bangladesh"
    region_state: Optional[str] = None
    city_area: Optional[str] = None
    zip_postal_code: Optional[str] = None
    same_address: bool = True
    delivery_instructions: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return all([self.street_address, self.region_state, self.city_area])


class ShippingInfo(CamelModel):
    method: str = "Standard Shipping"
    cost: float = 100


class PaymentInfo(CamelModel):
    method: str = "Cash on Delivery"


class Order(CamelModel):
    """
    Order domain model - represents a customer order

    Fields:
        id: Order ID (epoch millis)
        order_number: Human-readable number (TT-<millis>-<n>)
        email: Customer email (lower-cased)
        user_id: Account that placed the order (None for guests)
        items: Line items
        shipping / payment / address: Checkout details
        status: Position in the order flow (see OrderStatus)
        admin_status / shipper_name: Free-form admin annotations
        cancelled_at / cancelled_by / cancel_reason: Cancellation audit
    """

    id: str
    order_number: str
    email: str
    user_id: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    shipping: ShippingInfo = Field(default_factory=ShippingInfo)
    payment: PaymentInfo = Field(default_factory=PaymentInfo)
    address: OrderAddress = Field(default_factory=OrderAddress)
    status: str = OrderStatus.PENDING
    admin_status: Optional[str] = None
    shipper_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancel_reason: Optional[str] = None

    @property
    def total(self) -> float:
        items_total = sum(item.price * item.quantity for item in self.items)
        return round(items_total + self.shipping.cost, 2)


class OrderCreate(CamelModel):
    """Checkout payload"""
    email: Optional[str] = None
    user_id: Optional[str] = None
    items: Optional[List[OrderItem]] = None
    shipping: Optional[ShippingInfo] = None
    payment: Optional[PaymentInfo] = None
    address: Optional[OrderAddress] = None


class StatusUpdate(CamelModel):
    status: Optional[str] = None
    admin_status: Optional[str] = None
    shipper_name: Optional[str] = None


class CancelRequest(CamelModel):
    reason: Optional[str] = None
    email: Optional[str] = None


class RefuseRequest(CamelModel):
    reason: Optional[str] = None


class LocationData(BaseModel):
    """District -> city list, used by the checkout address form"""
    model_config = ConfigDict(extra="allow")

    districts: dict = Field(default_factory=dict)
