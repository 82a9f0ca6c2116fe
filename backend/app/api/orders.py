"""
Orders API Endpoints
Order intake (public) and order administration

Intake answers 202 as soon as the order is recorded as pending; fulfillment
runs in the background (see FulfillmentScheduler).
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import TokenUser, get_current_user, require_admin
from app.core.cache import CacheClient, cached_json_response
from app.core.config import settings
from app.core.dependencies import get_cache, get_order_service
from app.domain.order import OrderCreate, OrderStatus, OrderStatusUpdate
from app.services.order_service import OrderService

router = APIRouter()


@router.post("", status_code=status.HTTP_202_ACCEPTED)
def create_order(
    order: OrderCreate,
    service: OrderService = Depends(get_order_service)
):
    """
    Accept a new order

    Responses:
    - 202: order recorded as pending, fulfillment scheduled
    - 400: invalid body, unknown product or insufficient stock
    - 503: rejected under high load (Retry-After header)
    """
    accepted = service.accept_order(order)

    return {
        "status": "success",
        "message": accepted.message,
        "data": accepted.to_dict()
    }


@router.get("")
def list_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: TokenUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """List orders, newest first (admin only)"""
    orders, pagination = service.list_orders(status=status, page=page, limit=limit)

    return {
        "status": "success",
        "count": len(orders),
        "data": [order.to_dict() for order in orders],
        "pagination": pagination
    }


@router.get("/stats")
async def get_order_stats(
    request: Request,
    user: TokenUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
    cache: CacheClient = Depends(get_cache)
):
    """
    Order statistics (admin only, cached)

    Returns:
    - Count and revenue per status
    - Total orders
    - Orders created in the last 24 hours
    """
    return await cached_json_response(
        request,
        cache,
        kind="stats",
        ttl=settings.STATS_CACHE_TTL,
        load=lambda: {"status": "success", "data": service.get_order_stats().to_dict()},
        user_id=user.id
    )


@router.get("/{order_id}")
def get_order(
    order_id: UUID,
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """Get one order with its current status"""
    order = service.get_order(order_id)

    return {
        "status": "success",
        "data": order.to_dict()
    }


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: UUID,
    update: OrderStatusUpdate,
    user: TokenUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """
    Administrative status change (admin only)

    Still bound by the transition table: terminal orders cannot change and
    statuses never move backwards (409).
    """
    order = service.set_order_status(order_id, update.status)

    return {
        "status": "success",
        "message": f"Order status updated to {order.status.value}",
        "data": order.to_dict()
    }
