"""
Order lifecycle service.

Creates, edits and deletes orders together with their packages, rebuilds
normalized package records from order snapshots, and builds the read-only
order views.
"""

import uuid
from typing import Dict, List, Optional

from tracking_backend.app.core.config import settings
from tracking_backend.app.core.exceptions import (
    InsufficientPermissionsError,
    OrderNotFoundError,
    PackageNotFoundError,
    PartialUpdateError,
)
from tracking_backend.app.domain.workflow.aggregate_resolver import AggregateStatusResolver
from tracking_backend.app.domain.workflow.repository import DualStoreRepository
from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.models.package_status import PackageStatus
from tracking_backend.app.schemas.admin import StatsResponse
from tracking_backend.app.schemas.order import OrderCreate, OrderRecord, OrderResponse, OrderStatusResponse, OrderUpdate
from tracking_backend.app.schemas.package import PackageRecord
from tracking_backend.app.services.audit import log_event, AuditAction, AuditSeverity
from tracking_backend.app.services.cache import CacheService

STATS_CACHE_KEY = "system_stats"


class OrderService:

    @staticmethod
    async def create_order(repository: DualStoreRepository, data: OrderCreate, actor: dict) -> OrderRecord:
        """
        Place an order with one package per line item.

        Order and packages are written together and the order starts with
        the aggregate of its packages' initial status.
        """
        order_id = str(uuid.uuid4())
        packages = [
            PackageRecord(
                id=str(uuid.uuid4()),
                order_id=order_id,
                current_status=data.initial_status,
                **item.model_dump(),
            )
            for item in data.packages
        ]

        order = OrderRecord(
            id=order_id,
            customer_id=data.customer_id,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            shipping_address=data.shipping_address,
            source=data.source,
            packages=packages,
            status=AggregateStatusResolver.resolve(packages, order_id=order_id),
        )
        created = await repository.create_order(order)

        log_event(
            action=AuditAction.ORDER_CREATED,
            actor_id=actor["user_id"],
            target_id=order_id,
            details=f"Order {order_id} created with {len(packages)} items.",
            metadata={"customer_id": data.customer_id, "package_ids": [p.id for p in packages]},
        )
        await CacheService.invalidate(STATS_CACHE_KEY)
        return created

    @staticmethod
    async def delete_order(repository: DualStoreRepository, order_id: str, actor: dict) -> None:
        """Delete an order with its packages and their tracking history (admin only)."""
        if actor["role"] != ActorRole.ADMIN:
            raise InsufficientPermissionsError("Only administrators can delete orders")

        order = await repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if not await repository.delete_order(order_id):
            raise OrderNotFoundError(order_id)

        log_event(
            action=AuditAction.ORDER_DELETED,
            actor_id=actor["user_id"],
            target_id=order_id,
            details=f"Order {order_id} deleted with {len(order.packages)} items.",
            severity=AuditSeverity.WARNING,
        )
        await CacheService.invalidate(STATS_CACHE_KEY)

    @staticmethod
    async def update_order(
        repository: DualStoreRepository,
        order_id: str,
        data: OrderUpdate,
        actor: dict,
    ) -> OrderRecord:
        """
        Edit customer details and package metadata of an order (admin only).

        Each package is rebuilt from its normalized record, or from the
        embedded snapshot when that record is missing, before the edit is
        merged in. The aggregate is resolved again and both stores are
        written: the order first, then every package. A failure after the
        order landed raises PartialUpdateError.
        """
        if actor["role"] != ActorRole.ADMIN:
            raise InsufficientPermissionsError("Only administrators can edit orders")

        order = await repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        edits = {edit.id: edit for edit in data.packages or []}
        unknown = sorted(set(edits) - {p.id for p in order.packages})
        if unknown:
            raise PackageNotFoundError(unknown[0])

        enforce = settings.optimistic_concurrency
        writes = []
        for snapshot in order.packages:
            stored = await repository.get_package(snapshot.id)
            package = (stored or snapshot).model_copy(update={"order_id": order.id})
            edit = edits.get(package.id)
            if edit is not None:
                package = package.model_copy(
                    update=edit.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})
                )
            writes.append((package, stored.version if enforce and stored is not None else None))

        packages = [package for package, _ in writes]
        changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"packages"})
        updated = order.model_copy(update={
            **changes,
            "packages": packages,
            "status": AggregateStatusResolver.resolve(packages, order_id=order.id),
        })

        saved = await repository.put_order(updated, expected_version=order.version if enforce else None)
        completed = ["order"]
        step = "order"
        try:
            for package, expected_version in writes:
                step = f"package:{package.id}"
                await repository.put_package(package, expected_version=expected_version)
                completed.append(step)
        except Exception as exc:
            log_event(
                action=AuditAction.PARTIAL_UPDATE,
                actor_id=actor["user_id"],
                target_id=order_id,
                details=f"Order {order_id} partially updated, failed at {step}",
                metadata={"completed_steps": completed, "failed_step": step},
                severity=AuditSeverity.CRITICAL,
            )
            raise PartialUpdateError(order_id, completed, step, exc, resource="order") from exc

        log_event(
            action=AuditAction.ORDER_UPDATED,
            actor_id=actor["user_id"],
            target_id=order_id,
            details=f"Order {order_id} was updated.",
            metadata={"fields": sorted(changes), "package_ids": sorted(edits)},
        )
        await CacheService.invalidate(STATS_CACHE_KEY)
        return saved

    @staticmethod
    async def reconcile_packages(repository: DualStoreRepository, actor: dict) -> int:
        """
        Rebuild normalized package records from every order's embedded
        snapshots (admin only). Returns the number of records written.
        """
        if actor["role"] != ActorRole.ADMIN:
            raise InsufficientPermissionsError("Only administrators can reconcile packages")

        synced = await repository.reconcile_packages()

        log_event(
            action=AuditAction.PACKAGES_RECONCILED,
            actor_id=actor["user_id"],
            details=f"Synced {synced} packages from order snapshots.",
            metadata={"synced": synced},
            severity=AuditSeverity.WARNING,
        )
        await CacheService.invalidate(STATS_CACHE_KEY)
        return synced

    @staticmethod
    def to_view(order: OrderRecord) -> OrderResponse:
        return OrderResponse(
            order=order,
            aggregate_status=AggregateStatusResolver.resolve(order.packages, order_id=order.id),
            has_reported_issue=AggregateStatusResolver.has_reported_issue(order.packages),
        )

    @staticmethod
    async def get_order_view(repository: DualStoreRepository, order_id: str) -> OrderResponse:
        order = await repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return OrderService.to_view(order)

    @staticmethod
    async def list_order_views(repository: DualStoreRepository, customer_id: Optional[str] = None) -> List[OrderResponse]:
        return [OrderService.to_view(order) for order in await repository.list_orders(customer_id)]

    @staticmethod
    async def get_order_status(repository: DualStoreRepository, order_id: str) -> OrderStatusResponse:
        """Aggregate status resolved from the embedded packages, without writing anything."""
        order = await repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return OrderStatusResponse(
            order_id=order.id,
            status=AggregateStatusResolver.resolve(order.packages, order_id=order.id),
            has_reported_issue=AggregateStatusResolver.has_reported_issue(order.packages),
            package_statuses={p.id: p.current_status for p in order.packages},
        )

    @staticmethod
    async def get_system_stats(repository: DualStoreRepository) -> StatsResponse:
        """Totals and per-status package counts, cached for a short while."""
        cached = await CacheService.get(STATS_CACHE_KEY)
        if cached is not None:
            return StatsResponse(**cached)

        orders = await repository.list_orders()
        status_counts: Dict[str, int] = await repository.count_packages_by_status()

        stats = StatsResponse(
            total_orders=len(orders),
            total_packages=sum(status_counts.values()),
            status_counts=status_counts,
            orders_with_issues=sum(
                1 for o in orders
                if o.status == PackageStatus.ISSUE_REPORTED or AggregateStatusResolver.has_reported_issue(o.packages)
            ),
        )
        await CacheService.set(STATS_CACHE_KEY, stats.model_dump(), ttl_seconds=settings.stats_cache_ttl_seconds)
        return stats
