"""
Dual-Store Repository contract.

The workflow engine persists every package twice: as a normalized record and
as a snapshot embedded in its order. Implementations offer independent
per-record reads and writes only:

- no write is atomic with any other write; a caller that needs several
  writes to land together must cope with partial completion itself
- with expected_version=None, put_* is last-write-wins
- with expected_version given, put_* fails with ConcurrentModificationError
  unless the stored version still equals it, and bumps the version by one
- every I/O failure surfaces as RepositoryIOError
"""

from typing import Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from tracking_backend.app.models.package_status import PackageStatus
from tracking_backend.app.schemas.order import OrderRecord
from tracking_backend.app.schemas.package import PackageRecord, TrackingEventRecord


@runtime_checkable
class DualStoreRepository(Protocol):

    async def get_package(self, package_id: str) -> Optional[PackageRecord]:
        """Normalized package record, or None."""
        ...

    async def put_package(self, package: PackageRecord, expected_version: Optional[int] = None) -> PackageRecord:
        """Insert or replace the normalized record; returns it with its stored version."""
        ...

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        ...

    async def put_order(self, order: OrderRecord, expected_version: Optional[int] = None) -> OrderRecord:
        """Replace an existing order (embedded packages + aggregate status)."""
        ...

    async def append_tracking_event(self, event: TrackingEventRecord) -> TrackingEventRecord:
        ...

    async def scan_orders_for_package(self, package_id: str) -> Optional[Tuple[OrderRecord, PackageRecord]]:
        """Recovery path: first order embedding the package, with that snapshot."""
        ...

    async def reconcile_packages(self) -> int:
        """Overwrite the normalized record of every embedded snapshot; returns how many were written."""
        ...

    async def create_order(self, order: OrderRecord) -> OrderRecord:
        """Write a new order and the normalized records of its packages."""
        ...

    async def delete_order(self, order_id: str) -> bool:
        """Delete an order, its packages and their tracking events."""
        ...

    async def list_orders(self, customer_id: Optional[str] = None) -> List[OrderRecord]:
        """Orders, newest first."""
        ...

    async def list_tracking_events(self, package_id: str) -> List[TrackingEventRecord]:
        """Tracking history of a package, newest first."""
        ...

    async def list_packages_by_status(self, statuses: Iterable[PackageStatus]) -> List[PackageRecord]:
        ...

    async def find_package_by_tracking_code(self, code: str) -> Optional[PackageRecord]:
        ...

    async def count_packages_by_status(self) -> Dict[str, int]:
        ...
