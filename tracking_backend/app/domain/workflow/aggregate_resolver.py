"""
Aggregate Status Resolver.

An order is only as advanced as its least advanced package.
"""

from typing import Iterable, Optional, Sequence, Union

from tracking_backend.app.core.exceptions import MalformedOrderError
from tracking_backend.app.models.package_status import PackageStatus, is_ranked, rank
from tracking_backend.app.schemas.package import PackageRecord

PackageLike = Union[PackageRecord, PackageStatus, str]


def _status_of(item: PackageLike) -> PackageStatus:
    if isinstance(item, PackageRecord):
        return item.current_status
    return PackageStatus(item)


class AggregateStatusResolver:

    @staticmethod
    def resolve(packages: Sequence[PackageLike], order_id: Optional[str] = None) -> PackageStatus:
        """
        Compute an order's representative status.

        Rules:
        - one package: its status verbatim, ISSUE_REPORTED included
        - several: the ranked status with the lowest rank; ISSUE_REPORTED
          packages are left out of the minimum
        - all ISSUE_REPORTED: ISSUE_REPORTED

        Raises:
            MalformedOrderError: if packages is empty
        """
        statuses = [_status_of(p) for p in packages]

        if not statuses:
            raise MalformedOrderError(order_id=order_id)

        if len(statuses) == 1:
            return statuses[0]

        ranked = [s for s in statuses if is_ranked(s)]
        if not ranked:
            return PackageStatus.ISSUE_REPORTED

        return min(ranked, key=rank)

    @staticmethod
    def has_reported_issue(packages: Iterable[PackageLike]) -> bool:
        """True when any package is flagged, even if the aggregate masks it."""
        return any(_status_of(p) == PackageStatus.ISSUE_REPORTED for p in packages)
