"""
Admin API Endpoints.

Dashboard counters and store maintenance for administrators.
"""

from fastapi import APIRouter, Depends

from tracking_backend.app.core.dependencies import get_repository
from tracking_backend.app.core.guards import require_admin
from tracking_backend.app.schemas.admin import ReconcileResponse, StatsResponse
from tracking_backend.app.services.dual_store import SqlAlchemyDualStore
from tracking_backend.app.services.order_service import OrderService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    current_actor: dict = Depends(require_admin),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Order and package counters, per package status.
    """
    return await OrderService.get_system_stats(repository)


@router.post("/reconcile-packages", response_model=ReconcileResponse)
async def reconcile_packages(
    current_actor: dict = Depends(require_admin),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Rebuild normalized package records from the copies embedded in orders.
    """
    synced = await OrderService.reconcile_packages(repository, current_actor)
    return ReconcileResponse(synced=synced)
