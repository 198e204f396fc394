"""
Order API Endpoints.

Order placement, edits and deletion are admin actions; every actor may read orders
and their aggregate status.
"""

from typing import Optional
from fastapi import APIRouter, Body, Depends, Path, Query, status

from tracking_backend.app.core.dependencies import get_current_actor, get_repository
from tracking_backend.app.core.guards import require_role
from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderUpdate,
)
from tracking_backend.app.services.dual_store import SqlAlchemyDualStore
from tracking_backend.app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    current_actor: dict = Depends(require_role([ActorRole.ADMIN])),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Place an order with one package per line item (Admin only).
    """
    order = await OrderService.create_order(repository, order_data, current_actor)
    return OrderService.to_view(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    customer_id: Optional[str] = Query(None, description="Only orders of this customer"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    List orders, newest first.
    """
    orders = await OrderService.list_order_views(repository, customer_id)
    return OrderListResponse(orders=orders, total=len(orders))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str = Path(..., description="Order ID"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Get an order with its embedded packages.
    """
    return await OrderService.get_order_view(repository, order_id)


@router.get("/{order_id}/status", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: str = Path(..., description="Order ID"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Aggregate status of an order, resolved from its packages.
    """
    return await OrderService.get_order_status(repository, order_id)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str = Path(..., description="Order ID"),
    order_data: OrderUpdate = Body(...),
    current_actor: dict = Depends(require_role([ActorRole.ADMIN])),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Edit customer details and package metadata, writing both stores (Admin only).
    """
    order = await OrderService.update_order(repository, order_id, order_data, current_actor)
    return OrderService.to_view(order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str = Path(..., description="Order ID"),
    current_actor: dict = Depends(require_role([ActorRole.ADMIN])),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Delete an order with its packages and their tracking history (Admin only).
    """
    await OrderService.delete_order(repository, order_id, current_actor)
