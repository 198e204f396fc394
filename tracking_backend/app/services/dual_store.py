"""
SQLAlchemy implementation of the dual-store repository.

Tables: packages (normalized), orders (with embedded package snapshots) and
tracking_events. Each write commits on its own; nothing spans tables except
order creation and deletion.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_backend.app.core.exceptions import ConcurrentModificationError, RepositoryIOError
from tracking_backend.app.models.order import Order
from tracking_backend.app.models.package import Package
from tracking_backend.app.models.package_status import PackageStatus
from tracking_backend.app.models.tracking_event import TrackingEvent
from tracking_backend.app.schemas.order import OrderRecord
from tracking_backend.app.schemas.package import PackageRecord, TrackingEventRecord

logger = logging.getLogger("tracking.repository")

PACKAGE_FIELDS = (
    "order_id",
    "current_status",
    "tracking_number",
    "internal_tracking_code",
    "description",
    "weight",
    "dimensions",
    "declared_value",
    "photo_urls",
)

ORDER_FIELDS = (
    "customer_id",
    "customer_name",
    "customer_phone",
    "shipping_address",
    "source",
)


def _package_values(package: PackageRecord) -> dict:
    return {field: getattr(package, field) for field in PACKAGE_FIELDS}


def _order_values(order: OrderRecord) -> dict:
    values = {field: getattr(order, field) for field in ORDER_FIELDS}
    values["packages"] = [p.snapshot() for p in order.packages]
    values["status"] = order.status
    return values


def _to_order_record(row: Order) -> OrderRecord:
    return OrderRecord(
        id=row.id,
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        shipping_address=row.shipping_address,
        source=row.source,
        packages=[PackageRecord.model_validate(p) for p in (row.packages or [])],
        status=row.status,
        version=row.version,
        created_at=row.created_at,
    )


class SqlAlchemyDualStore:
    """Dual-store repository over one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, operation: str, exc: Exception) -> RepositoryIOError:
        logger.error("Repository %s failed: %s", operation, exc)
        await self.db.rollback()
        return RepositoryIOError(operation)

    # Packages

    async def get_package(self, package_id: str) -> Optional[PackageRecord]:
        try:
            result = await self.db.execute(
                select(Package).where(Package.id == package_id).execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise await self._fail("get_package", exc) from exc
        return PackageRecord.model_validate(row) if row else None

    async def put_package(self, package: PackageRecord, expected_version: Optional[int] = None) -> PackageRecord:
        if not package.order_id:
            raise ValueError(f"Package {package.id} has no order_id")

        values = _package_values(package)
        try:
            if expected_version is not None:
                result = await self.db.execute(
                    update(Package)
                    .where(Package.id == package.id, Package.version == expected_version)
                    .values(**values, version=expected_version + 1)
                )
                if result.rowcount == 0:
                    await self.db.rollback()
                    raise ConcurrentModificationError("Package", package.id, expected_version)
                await self.db.commit()
                return package.model_copy(update={"version": expected_version + 1})

            row = await self.db.get(Package, package.id, populate_existing=True)
            if row is None:
                row = Package(id=package.id, version=1, **values)
                self.db.add(row)
            else:
                for field, value in values.items():
                    setattr(row, field, value)
                row.version = row.version + 1
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as exc:
            raise await self._fail("put_package", exc) from exc

        return PackageRecord.model_validate(row)

    async def find_package_by_tracking_code(self, code: str) -> Optional[PackageRecord]:
        try:
            result = await self.db.execute(
                select(Package).where(Package.internal_tracking_code == code).limit(1)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise await self._fail("find_package_by_tracking_code", exc) from exc
        return PackageRecord.model_validate(row) if row else None

    async def list_packages_by_status(self, statuses: Iterable[PackageStatus]) -> List[PackageRecord]:
        wanted = list(statuses)
        if not wanted:
            return []
        try:
            result = await self.db.execute(
                select(Package).where(Package.current_status.in_(wanted)).order_by(Package.updated_at.desc())
            )
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise await self._fail("list_packages_by_status", exc) from exc
        return [PackageRecord.model_validate(row) for row in rows]

    async def count_packages_by_status(self) -> Dict[str, int]:
        try:
            result = await self.db.execute(
                select(Package.current_status, func.count(Package.id)).group_by(Package.current_status)
            )
            rows = result.all()
        except SQLAlchemyError as exc:
            raise await self._fail("count_packages_by_status", exc) from exc
        return {PackageStatus(status).value: count for status, count in rows}

    # Orders

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        try:
            result = await self.db.execute(
                select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise await self._fail("get_order", exc) from exc
        return _to_order_record(row) if row else None

    async def put_order(self, order: OrderRecord, expected_version: Optional[int] = None) -> OrderRecord:
        values = _order_values(order)
        try:
            if expected_version is not None:
                result = await self.db.execute(
                    update(Order)
                    .where(Order.id == order.id, Order.version == expected_version)
                    .values(**values, version=expected_version + 1)
                )
                if result.rowcount == 0:
                    await self.db.rollback()
                    raise ConcurrentModificationError("Order", order.id, expected_version)
                await self.db.commit()
                return order.model_copy(update={"version": expected_version + 1})

            row = await self.db.get(Order, order.id, populate_existing=True)
            if row is None:
                row = Order(id=order.id, version=1, **values)
                self.db.add(row)
            else:
                for field, value in values.items():
                    setattr(row, field, value)
                row.version = row.version + 1
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as exc:
            raise await self._fail("put_order", exc) from exc

        return _to_order_record(row)

    async def scan_orders_for_package(self, package_id: str) -> Optional[Tuple[OrderRecord, PackageRecord]]:
        try:
            result = await self.db.execute(select(Order).order_by(Order.created_at))
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise await self._fail("scan_orders_for_package", exc) from exc

        for row in rows:
            for snapshot in row.packages or []:
                if snapshot.get("id") == package_id:
                    order = _to_order_record(row)
                    return order, order.find_package(package_id)
        return None

    async def reconcile_packages(self) -> int:
        try:
            result = await self.db.execute(
                select(Order).order_by(Order.created_at).execution_options(populate_existing=True)
            )
            orders = result.scalars().all()

            synced = 0
            for order in orders:
                for snapshot in order.packages or []:
                    package = PackageRecord.model_validate(snapshot).model_copy(update={"order_id": order.id})
                    values = _package_values(package)
                    row = await self.db.get(Package, package.id, populate_existing=True)
                    if row is None:
                        self.db.add(Package(id=package.id, version=1, **values))
                        await self.db.flush()
                    else:
                        for field, value in values.items():
                            setattr(row, field, value)
                        row.version = row.version + 1
                    synced += 1
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("reconcile_packages", exc) from exc
        return synced

    async def create_order(self, order: OrderRecord) -> OrderRecord:
        try:
            row = Order(id=order.id, version=1, **_order_values(order))
            self.db.add(row)
            # Orders must exist before their packages reference them
            await self.db.flush()
            for package in order.packages:
                self.db.add(Package(id=package.id, version=1, **_package_values(package)))
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as exc:
            raise await self._fail("create_order", exc) from exc
        return _to_order_record(row)

    async def delete_order(self, order_id: str) -> bool:
        try:
            row = await self.db.get(Order, order_id)
            if row is None:
                return False
            package_ids = [p.get("id") for p in (row.packages or [])]
            normalized = await self.db.execute(select(Package.id).where(Package.order_id == order_id))
            package_ids.extend(normalized.scalars().all())

            if package_ids:
                await self.db.execute(
                    delete(TrackingEvent).where(TrackingEvent.package_id.in_(set(package_ids)))
                )
            await self.db.execute(delete(Package).where(Package.order_id == order_id))
            await self.db.delete(row)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("delete_order", exc) from exc
        return True

    async def list_orders(self, customer_id: Optional[str] = None) -> List[OrderRecord]:
        query = select(Order).order_by(Order.created_at.desc())
        if customer_id:
            query = query.where(Order.customer_id == customer_id)
        try:
            result = await self.db.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise await self._fail("list_orders", exc) from exc
        return [_to_order_record(row) for row in rows]

    # Tracking events

    async def append_tracking_event(self, event: TrackingEventRecord) -> TrackingEventRecord:
        try:
            self.db.add(TrackingEvent(**event.model_dump()))
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("append_tracking_event", exc) from exc
        return event

    async def list_tracking_events(self, package_id: str) -> List[TrackingEventRecord]:
        try:
            result = await self.db.execute(
                select(TrackingEvent)
                .where(TrackingEvent.package_id == package_id)
                .order_by(TrackingEvent.timestamp.desc())
            )
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise await self._fail("list_tracking_events", exc) from exc
        return [TrackingEventRecord.model_validate(row) for row in rows]
