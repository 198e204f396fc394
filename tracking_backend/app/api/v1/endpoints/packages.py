"""
Package Workflow API Endpoints.

Agents read packages, see which statuses they may set next, and move
packages through their region of the pipeline.
"""

from fastapi import APIRouter, Depends, Path, Query, Body

from tracking_backend.app.core.config import settings
from tracking_backend.app.core.dependencies import get_current_actor, get_repository, get_transaction
from tracking_backend.app.core.exceptions import PackageNotFoundError
from tracking_backend.app.core.guards import require_admin
from tracking_backend.app.domain.workflow.transition_policy import TransitionPolicy
from tracking_backend.app.domain.workflow.update_transaction import PackageUpdateTransaction
from tracking_backend.app.schemas.package import (
    IssueClearRequest,
    IssueReportRequest,
    NextStatusesResponse,
    PackageMetadataPatch,
    PackageRecord,
    StatusUpdateRequest,
    TrackingHistoryResponse,
    WorkloadResponse,
)
from tracking_backend.app.services.dual_store import SqlAlchemyDualStore

router = APIRouter(prefix="/packages", tags=["Packages"])


@router.get("/workload", response_model=WorkloadResponse)
async def get_workload(
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    List packages the calling role can currently move forward.
    """
    statuses = TransitionPolicy.actionable_statuses(current_actor["role"])
    packages = await repository.list_packages_by_status(statuses)
    return WorkloadResponse(packages=packages, total=len(packages))


@router.get("/lookup", response_model=PackageRecord)
async def lookup_package(
    code: str = Query(..., min_length=1, description="Internal tracking code"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Find a package by its internal tracking code.
    """
    package = await repository.find_package_by_tracking_code(code)
    if package is None:
        raise PackageNotFoundError(code)
    return package


@router.get("/{package_id}", response_model=PackageRecord)
async def get_package(
    package_id: str = Path(..., description="Package ID"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Get a package from the normalized store, falling back to its order copy.
    """
    package = await repository.get_package(package_id)
    if package is None:
        found = await repository.scan_orders_for_package(package_id)
        if found is None:
            raise PackageNotFoundError(package_id)
        order, package = found
        package = package.model_copy(update={"order_id": order.id})
    return package


@router.get("/{package_id}/next-statuses", response_model=NextStatusesResponse)
async def get_next_statuses(
    package_id: str = Path(..., description="Package ID"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Statuses the calling role may set next (drives the action buttons).
    """
    package = await get_package(package_id, current_actor, repository)
    return NextStatusesResponse(
        package_id=package.id,
        current_status=package.current_status,
        next_statuses=TransitionPolicy.next_allowed(current_actor["role"], package.current_status)
    )


@router.post("/{package_id}/status", response_model=PackageRecord)
async def update_package_status(
    package_id: str = Path(..., description="Package ID"),
    update: StatusUpdateRequest = Body(...),
    current_actor: dict = Depends(get_current_actor),
    transaction: PackageUpdateTransaction = Depends(get_transaction)
):
    """
    Move a package to a new status.

    Returns 409 when the role may not set that status from the current one,
    or when the package changed since it was read.
    """
    return await transaction.apply(
        package_id,
        update.status,
        actor_id=current_actor["user_id"],
        actor_role=current_actor["role"],
        location=update.location or settings.default_location,
        notes=update.notes,
        metadata_patch=update.metadata
    )


@router.patch("/{package_id}/metadata", response_model=PackageRecord)
async def update_package_metadata(
    package_id: str = Path(..., description="Package ID"),
    patch: PackageMetadataPatch = Body(...),
    current_actor: dict = Depends(get_current_actor),
    transaction: PackageUpdateTransaction = Depends(get_transaction)
):
    """
    Update package details (weight, photos, internal tracking code...) without moving it.
    """
    return await transaction.update_metadata(
        package_id,
        actor_id=current_actor["user_id"],
        actor_role=current_actor["role"],
        metadata_patch=patch
    )


@router.post("/{package_id}/issue", response_model=PackageRecord)
async def report_issue(
    package_id: str = Path(..., description="Package ID"),
    report: IssueReportRequest = Body(...),
    current_actor: dict = Depends(get_current_actor),
    transaction: PackageUpdateTransaction = Depends(get_transaction)
):
    """
    Flag a package with ISSUE_REPORTED.
    """
    return await transaction.report_issue(
        package_id,
        actor_id=current_actor["user_id"],
        actor_role=current_actor["role"],
        location=report.location or settings.default_location,
        notes=report.notes
    )


@router.post("/{package_id}/issue/clear", response_model=PackageRecord)
async def clear_issue(
    package_id: str = Path(..., description="Package ID"),
    request: IssueClearRequest = Body(...),
    current_actor: dict = Depends(require_admin),
    transaction: PackageUpdateTransaction = Depends(get_transaction)
):
    """
    Return a flagged package to the pipeline (Admin only).
    """
    return await transaction.clear_issue(
        package_id,
        actor_id=current_actor["user_id"],
        actor_role=current_actor["role"],
        restore_status=request.restore_status,
        location=request.location or settings.default_location,
        notes=request.notes
    )


@router.get("/{package_id}/tracking", response_model=TrackingHistoryResponse)
async def get_tracking_history(
    package_id: str = Path(..., description="Package ID"),
    current_actor: dict = Depends(get_current_actor),
    repository: SqlAlchemyDualStore = Depends(get_repository)
):
    """
    Tracking history of a package, newest first.
    """
    events = await repository.list_tracking_events(package_id)
    return TrackingHistoryResponse(package_id=package_id, events=events)
