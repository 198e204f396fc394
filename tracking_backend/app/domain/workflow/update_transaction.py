"""
Package Update Transaction.

The single mutation entry point for packages. Keeps the normalized package
record and the snapshot embedded in its order equal, re-establishes
order.status == resolve(order.packages) and appends a tracking event.

The repository offers no cross-record atomicity, so the three writes land
one after another:

    package → order → tracking event

A failure of the first write leaves nothing changed and propagates as is. A
failure of a later write is reported as PartialUpdateError naming the steps
that did land. Nothing is retried here.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from tracking_backend.app.core.exceptions import (
    IllegalTransitionError,
    InsufficientPermissionsError,
    OrderNotFoundError,
    PackageNotFoundError,
    PartialUpdateError,
)
from tracking_backend.app.domain.workflow.aggregate_resolver import AggregateStatusResolver
from tracking_backend.app.domain.workflow.repository import DualStoreRepository
from tracking_backend.app.domain.workflow.transition_policy import TransitionPolicy
from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.models.package_status import PackageStatus, INITIAL_STATUS, is_ranked
from tracking_backend.app.schemas.order import OrderRecord
from tracking_backend.app.schemas.package import PackageMetadataPatch, PackageRecord, TrackingEventRecord
from tracking_backend.app.services.audit import log_event, AuditAction, AuditSeverity

logger = logging.getLogger("tracking.workflow")

MetadataPatch = Union[PackageMetadataPatch, Dict[str, Any], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageUpdateTransaction:
    """
    Orchestrates status and metadata changes of packages.

    Args:
        repository: Dual-store repository
        enforce_versions: Pass the loaded versions to every put so a
            concurrent change between load and save raises
            ConcurrentModificationError instead of being overwritten
        clock: Source of tracking event timestamps
    """

    STEP_PACKAGE = "package"
    STEP_ORDER = "order"
    STEP_TRACKING_EVENT = "tracking_event"

    def __init__(
        self,
        repository: DualStoreRepository,
        enforce_versions: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.enforce_versions = enforce_versions
        self.clock = clock

    async def apply(
        self,
        package_id: str,
        requested_status: PackageStatus,
        actor_id: str,
        actor_role: ActorRole,
        location: str = "",
        notes: Optional[str] = None,
        metadata_patch: MetadataPatch = None,
    ) -> PackageRecord:
        """
        Move a package to requested_status.

        Flow:
        1. Load the package (materializing it from its order if needed)
        2. Validate the transition for the actor's role
        3. Merge the metadata patch and set the status
        4. Load the parent order and swap in the new snapshot
        5. Recompute the order's aggregate status
        6. Write package, order and tracking event
        7. Return the updated package

        Raises:
            PackageNotFoundError: package unknown in both stores
            IllegalTransitionError: role may not set requested_status now
            OrderNotFoundError: parent order missing
            ConcurrentModificationError: package changed since it was loaded
            PartialUpdateError: a write after the first failed
            RepositoryIOError: a read or the first write failed
        """
        requested = PackageStatus(requested_status)
        role = ActorRole(actor_role)

        package = await self._load_package(package_id, actor_id)

        if not TransitionPolicy.is_allowed(role, package.current_status, requested):
            raise IllegalTransitionError(
                package.current_status,
                requested,
                role,
                allowed=TransitionPolicy.next_allowed(role, package.current_status),
            )

        updated = self._merge(package, metadata_patch, status=requested)
        saved = await self._commit(package, updated, actor_id, location, notes)

        action = AuditAction.ISSUE_REPORTED if requested == PackageStatus.ISSUE_REPORTED else AuditAction.STATUS_UPDATE
        log_event(
            action=action,
            actor_id=actor_id,
            target_id=package_id,
            details=f"Package {package_id} updated to {requested.value}",
            metadata={
                "from_status": package.current_status.value,
                "to_status": requested.value,
                "role": role.value,
            },
            severity=AuditSeverity.WARNING if action == AuditAction.ISSUE_REPORTED else AuditSeverity.INFO,
        )
        return saved

    async def report_issue(
        self,
        package_id: str,
        actor_id: str,
        actor_role: ActorRole,
        location: str = "",
        notes: Optional[str] = None,
    ) -> PackageRecord:
        """Flag a package with ISSUE_REPORTED, wherever it is in the pipeline."""
        return await self.apply(
            package_id,
            PackageStatus.ISSUE_REPORTED,
            actor_id,
            actor_role,
            location=location,
            notes=notes,
        )

    async def clear_issue(
        self,
        package_id: str,
        actor_id: str,
        actor_role: ActorRole,
        restore_status: Optional[PackageStatus] = None,
        location: str = "",
        notes: Optional[str] = None,
    ) -> PackageRecord:
        """
        Return a flagged package to the pipeline (administrators only).

        Without restore_status the package goes back to the status it held
        when it was flagged, as recorded on the flagging event. Histories
        without such an event fall back to the most recent pipeline status,
        then to the first pipeline status.
        """
        role = ActorRole(actor_role)
        if role != ActorRole.ADMIN:
            raise InsufficientPermissionsError(
                "Only administrators can clear a reported issue",
                details={"package_id": package_id, "role": role.value},
            )

        package = await self._load_package(package_id, actor_id)
        target = PackageStatus(restore_status) if restore_status else await self._status_before_issue(package_id)

        if package.current_status != PackageStatus.ISSUE_REPORTED or not is_ranked(target):
            raise IllegalTransitionError(package.current_status, target, role)

        updated = self._merge(package, None, status=target)
        saved = await self._commit(package, updated, actor_id, location, notes)

        log_event(
            action=AuditAction.ISSUE_CLEARED,
            actor_id=actor_id,
            target_id=package_id,
            details=f"Issue on package {package_id} cleared, restored to {target.value}",
            metadata={"restored_status": target.value},
        )
        return saved

    async def update_metadata(
        self,
        package_id: str,
        actor_id: str,
        actor_role: ActorRole,
        metadata_patch: MetadataPatch,
    ) -> PackageRecord:
        """
        Change package metadata without a status change.

        Writes both stores; no tracking event is recorded. Agents may only
        touch packages whose current status lies in their own phase.
        """
        role = ActorRole(actor_role)
        package = await self._load_package(package_id, actor_id)

        if role != ActorRole.ADMIN and not TransitionPolicy.owns_status(role, package.current_status):
            raise InsufficientPermissionsError(
                f"Role {role.value} cannot edit a package at {package.current_status.value}",
                details={"package_id": package_id, "current_status": package.current_status.value},
            )

        updated = self._merge(package, metadata_patch)
        saved = await self._commit(package, updated, actor_id, record_event=False)

        log_event(
            action=AuditAction.METADATA_UPDATE,
            actor_id=actor_id,
            target_id=package_id,
            details=f"Metadata updated for package {package_id}",
            metadata={"fields": sorted(self._patch_values(metadata_patch))},
        )
        return saved

    # Steps

    async def _load_package(self, package_id: str, actor_id: str) -> PackageRecord:
        package = await self.repository.get_package(package_id)
        if package is not None:
            return package

        # Recovery: the package may only exist inside its order
        found = await self.repository.scan_orders_for_package(package_id)
        if found is None:
            raise PackageNotFoundError(package_id)

        order, snapshot = found
        materialized = await self.repository.put_package(snapshot.model_copy(update={"order_id": order.id}))
        logger.warning("Materialized package %s from order %s", package_id, order.id)
        log_event(
            action=AuditAction.PACKAGE_MATERIALIZED,
            actor_id=actor_id,
            target_id=package_id,
            details=f"Package {package_id} recovered from order {order.id}",
            severity=AuditSeverity.WARNING,
        )
        return materialized

    async def _load_order(self, order_id: str) -> OrderRecord:
        order = await self.repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _status_before_issue(self, package_id: str) -> PackageStatus:
        history = await self.repository.list_tracking_events(package_id)
        # Newest flag is the current one
        for event in history:
            if event.status == PackageStatus.ISSUE_REPORTED and event.previous_status and is_ranked(event.previous_status):
                return event.previous_status
        for event in history:
            if is_ranked(event.status):
                return event.status
        return INITIAL_STATUS

    @staticmethod
    def _patch_values(metadata_patch: MetadataPatch) -> Dict[str, Any]:
        if metadata_patch is None:
            return {}
        if not isinstance(metadata_patch, BaseModel):
            metadata_patch = PackageMetadataPatch(**metadata_patch)
        return metadata_patch.model_dump(exclude_unset=True, exclude_none=True)

    def _merge(
        self,
        package: PackageRecord,
        metadata_patch: MetadataPatch,
        status: Optional[PackageStatus] = None,
    ) -> PackageRecord:
        changes = self._patch_values(metadata_patch)
        if status is not None:
            changes["current_status"] = status
        return package.model_copy(update=changes)

    @staticmethod
    def _with_snapshot(order: OrderRecord, package: PackageRecord) -> OrderRecord:
        packages: List[PackageRecord] = []
        replaced = False
        for embedded in order.packages:
            if embedded.id == package.id:
                packages.append(package)
                replaced = True
            else:
                packages.append(embedded)
        if not replaced:
            packages.append(package)

        status = AggregateStatusResolver.resolve(packages, order_id=order.id)
        return order.model_copy(update={"packages": packages, "status": status})

    async def _commit(
        self,
        original: PackageRecord,
        updated: PackageRecord,
        actor_id: str,
        location: str = "",
        notes: Optional[str] = None,
        record_event: bool = True,
    ) -> PackageRecord:
        order = await self._load_order(updated.order_id)
        order_after = self._with_snapshot(order, updated)

        event = None
        if record_event:
            event = TrackingEventRecord(
                id=str(uuid.uuid4()),
                package_id=updated.id,
                status=updated.current_status,
                previous_status=original.current_status,
                timestamp=self.clock(),
                actor_id=str(actor_id),
                location=location or "",
                notes=notes,
                photo_urls=updated.photo_urls or None,
            )

        # First write: failures leave both stores untouched
        saved = await self.repository.put_package(
            updated,
            expected_version=original.version if self.enforce_versions else None,
        )
        completed = [self.STEP_PACKAGE]

        step = self.STEP_ORDER
        try:
            await self.repository.put_order(
                order_after,
                expected_version=order.version if self.enforce_versions else None,
            )
            completed.append(self.STEP_ORDER)

            if event is not None:
                step = self.STEP_TRACKING_EVENT
                await self.repository.append_tracking_event(event)
                completed.append(self.STEP_TRACKING_EVENT)
        except Exception as exc:
            log_event(
                action=AuditAction.PARTIAL_UPDATE,
                actor_id=actor_id,
                target_id=updated.id,
                details=f"Package {updated.id} partially updated, failed at {step}",
                metadata={"completed_steps": completed, "failed_step": step},
                severity=AuditSeverity.CRITICAL,
            )
            raise PartialUpdateError(updated.id, completed, step, exc) from exc

        logger.info(
            "Package updated",
            extra={
                "package_id": updated.id,
                "order_id": order.id,
                "status": updated.current_status.value,
                "order_status": order_after.status.value,
            },
        )
        return saved
