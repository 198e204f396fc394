"""
Package Status Taxonomy.

Lifecycle states of a package and their partition into region phases.

Pipeline (ranked, in order):
    Origin:      PURCHASED_FROM_SELLER → IN_TRANSIT_TO_ORIGIN_AGENT → RECEIVED_AT_ORIGIN
                 → QC_CHECKED → PACKED_AT_ORIGIN → READY_TO_SHIP_HUB → SHIPPED_TO_HUB
    Hub:         SHIPPED_TO_HUB → ARRIVED_HUB → REPACKING → READY_TO_SHIP_DESTINATION
                 → SHIPPED_TO_DESTINATION
    Destination: SHIPPED_TO_DESTINATION → ARRIVED_DESTINATION → OUT_FOR_DELIVERY → DELIVERED

ISSUE_REPORTED is an exception flag outside the pipeline. It has no rank;
callers must check is_ranked() before calling rank().
"""

import enum
from typing import Dict, Tuple


class PackageStatus(str, enum.Enum):
    """Package status enumeration."""
    # Exception; declaration order is not pipeline order
    ISSUE_REPORTED = "ISSUE_REPORTED"

    # Origin
    PURCHASED_FROM_SELLER = "PURCHASED_FROM_SELLER"
    IN_TRANSIT_TO_ORIGIN_AGENT = "IN_TRANSIT_TO_ORIGIN_AGENT"
    RECEIVED_AT_ORIGIN = "RECEIVED_AT_ORIGIN"
    QC_CHECKED = "QC_CHECKED"
    PACKED_AT_ORIGIN = "PACKED_AT_ORIGIN"
    READY_TO_SHIP_HUB = "READY_TO_SHIP_HUB"
    SHIPPED_TO_HUB = "SHIPPED_TO_HUB"

    # Hub
    ARRIVED_HUB = "ARRIVED_HUB"
    REPACKING = "REPACKING"
    READY_TO_SHIP_DESTINATION = "READY_TO_SHIP_DESTINATION"
    SHIPPED_TO_DESTINATION = "SHIPPED_TO_DESTINATION"

    # Destination
    ARRIVED_DESTINATION = "ARRIVED_DESTINATION"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"


class RegionPhase(str, enum.Enum):
    """Agent-owned windows over the pipeline."""
    ORIGIN = "ORIGIN"
    HUB = "HUB"
    DESTINATION = "DESTINATION"


class UnrankedStatusError(ValueError):
    """Raised when rank() is asked for a status outside the pipeline."""


PIPELINE: Tuple[PackageStatus, ...] = (
    PackageStatus.PURCHASED_FROM_SELLER,
    PackageStatus.IN_TRANSIT_TO_ORIGIN_AGENT,
    PackageStatus.RECEIVED_AT_ORIGIN,
    PackageStatus.QC_CHECKED,
    PackageStatus.PACKED_AT_ORIGIN,
    PackageStatus.READY_TO_SHIP_HUB,
    PackageStatus.SHIPPED_TO_HUB,
    PackageStatus.ARRIVED_HUB,
    PackageStatus.REPACKING,
    PackageStatus.READY_TO_SHIP_DESTINATION,
    PackageStatus.SHIPPED_TO_DESTINATION,
    PackageStatus.ARRIVED_DESTINATION,
    PackageStatus.OUT_FOR_DELIVERY,
    PackageStatus.DELIVERED,
)

STATUS_RANK: Dict[PackageStatus, int] = {status: index for index, status in enumerate(PIPELINE)}

# Each phase repeats the boundary "shipped to X" status of its neighbour
PHASE_STATUSES: Dict[RegionPhase, Tuple[PackageStatus, ...]] = {
    RegionPhase.ORIGIN: PIPELINE[STATUS_RANK[PackageStatus.PURCHASED_FROM_SELLER]:STATUS_RANK[PackageStatus.SHIPPED_TO_HUB] + 1],
    RegionPhase.HUB: PIPELINE[STATUS_RANK[PackageStatus.SHIPPED_TO_HUB]:STATUS_RANK[PackageStatus.SHIPPED_TO_DESTINATION] + 1],
    RegionPhase.DESTINATION: PIPELINE[STATUS_RANK[PackageStatus.SHIPPED_TO_DESTINATION]:],
}

PHASE_ORDER: Tuple[RegionPhase, ...] = (RegionPhase.ORIGIN, RegionPhase.HUB, RegionPhase.DESTINATION)

INITIAL_STATUS = PIPELINE[0]
FINAL_STATUS = PIPELINE[-1]


def is_ranked(status: PackageStatus) -> bool:
    """True for every pipeline status, False for ISSUE_REPORTED."""
    return PackageStatus(status) in STATUS_RANK


def rank(status: PackageStatus) -> int:
    """
    Position of a status in the pipeline.

    Raises:
        UnrankedStatusError: for ISSUE_REPORTED
    """
    try:
        return STATUS_RANK[PackageStatus(status)]
    except KeyError:
        raise UnrankedStatusError(f"{PackageStatus(status).value} has no pipeline rank") from None


def phases_of(status: PackageStatus) -> Tuple[RegionPhase, ...]:
    """Phases whose window contains the status (two for boundary statuses)."""
    return tuple(phase for phase in PHASE_ORDER if status in PHASE_STATUSES[phase])
