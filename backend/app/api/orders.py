"""
Orders API Endpoints
Checkout, order lookup and the admin fulfilment flow
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, status

from app.core.auth import TokenUser, get_current_user_optional, require_admin
from app.core.csrf import verify_csrf
from app.core.rate_limit import state_change_rate_limit
from app.domain.order import (
    CancelRequest,
    OrderCreate,
    OrderNotFoundError,
    OrderStatusError,
    RefuseRequest,
    StatusUpdate,
)
from app.domain.user import Role
from app.repositories.order_repository import OrderRepository
from app.services.email_service import EmailService
from app.services.order_service import OrderService, OrderValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

# Mutating order routes are CSRF protected and share the state-change limit
protected = [Depends(state_change_rate_limit), Depends(verify_csrf)]


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=protected)
async def create_order(data: OrderCreate, background_tasks: BackgroundTasks):
    """
    Place an order (public, guests allowed)

    Items are checked against stock; stock is only reserved on approval.
    Sends a confirmation to the customer and a notification to the admin.
    """
    try:
        order = OrderService().create_order(data)

    except OrderValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Error creating order: {e}")
        raise HTTPException(status_code=500, detail="Failed to create order")

    emails = EmailService()
    background_tasks.add_task(emails.send_order_confirmation_email, order.email, order)
    background_tasks.add_task(emails.send_admin_order_notification_email, order)

    return {"order": order.to_dict()}


@router.get("")
async def get_orders(user: TokenUser = Depends(require_admin)):
    """Get all orders, newest first (admin only)"""
    try:
        orders = OrderRepository().find_all()
        return {"orders": [order.to_dict() for order in orders]}

    except Exception as e:
        logger.exception(f"Error fetching orders: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch orders")


@router.get("/email/{email}")
async def get_orders_by_email(email: str):
    """Get orders placed with an email address, newest first"""
    try:
        orders = OrderRepository().find_by_email(email)
        return {"orders": [order.to_dict() for order in orders]}

    except Exception as e:
        logger.exception(f"Error fetching orders by email: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch orders")


@router.get("/{order_id}")
async def get_order(order_id: str):
    """Get a single order"""
    try:
        order = OrderRepository().find_by_id(order_id)

    except Exception as e:
        logger.exception(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch order")

    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"order": order.to_dict()}


@router.put("/{order_id}/status", dependencies=protected)
async def update_order_status(
    order_id: str,
    data: StatusUpdate,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_admin)
):
    """
    Move an order along the status flow (admin only)

    Delivered orders are frozen and statuses cannot move backwards except
    through the allowed admin overrides. A status email is sent only when
    the status actually changes.
    """
    if not data.status:
        raise HTTPException(status_code=400, detail="Status is required")

    try:
        result = OrderService().update_status(
            order_id,
            data.status,
            admin_status=data.admin_status,
            shipper_name=data.shipper_name,
            fields_set=frozenset(data.model_fields_set),
        )

    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.changed:
        background_tasks.add_task(
            EmailService().send_order_status_email,
            result.order.email, result.order, data.status, data.shipper_name
        )

    return {"order": result.order.to_dict()}


@router.put("/{order_id}/approve", dependencies=protected)
async def approve_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_admin)
):
    """Approve an order and take its items out of stock (admin only)"""
    try:
        result = OrderService().approve(order_id)

    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.changed:
        background_tasks.add_task(
            EmailService().send_order_status_email,
            result.order.email, result.order, result.order.status
        )

    return {"order": result.order.to_dict()}


@router.put("/{order_id}/refuse", dependencies=protected)
async def refuse_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    data: Optional[RefuseRequest] = Body(None),
    user: TokenUser = Depends(require_admin)
):
    """Refuse an order (admin only)"""
    reason = data.reason if data else None
    try:
        result = OrderService().refuse(order_id)

    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.changed:
        background_tasks.add_task(
            EmailService().send_order_status_email,
            result.order.email, result.order, result.order.status, None, reason
        )

    return {"order": result.order.to_dict()}


@router.put("/{order_id}/cancel", dependencies=protected)
async def cancel_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    data: Optional[CancelRequest] = Body(None),
    user: Optional[TokenUser] = Depends(get_current_user_optional)
):
    """
    Cancel an order (customer or admin)

    Allowed callers, in priority order: an admin, the account that placed
    the order, a logged-in user with the order's email, or a guest that
    provides the order's email. Customers may only cancel pending orders.
    """
    data = data or CancelRequest()
    repo = OrderRepository()
    order = repo.find_by_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    order_email = order.email.lower()
    provided_email = (data.email or "").strip().lower()
    is_admin = bool(user and user.role == Role.ADMIN)

    if is_admin:
        cancelled_by = "admin"
    elif user and order.user_id and user.id == order.user_id:
        cancelled_by = "user"
    elif user and user.email.lower() == order_email:
        cancelled_by = "user"
    elif provided_email and provided_email == order_email:
        cancelled_by = "user"
    elif user:
        raise HTTPException(status_code=403, detail="You can only cancel your own orders")
    else:
        raise HTTPException(
            status_code=401,
            detail="Authentication required to cancel order. "
                   "Please log in or provide your email if you placed this order as a guest."
        )

    try:
        cancelled = OrderService(order_repo=repo).cancel(order_id, data.reason, cancelled_by)

    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(
        EmailService().send_order_cancellation_email,
        cancelled.email, cancelled, cancelled_by
    )

    return {"order": cancelled.to_dict()}
