"""
Role-Transition Policy.

Region ownership gates legal transitions: an agent may move a package only
while its status lies in the agent's own phase, and may then jump to any
later status of that phase (e.g. skip QC and go straight to packed).

ROLE_STATUSES is data, looked up once per call:
    ORIGIN_AGENT       → origin phase
    HUB_AGENT          → hub phase
    DESTINATION_AGENT  → destination phase
    ADMIN              → origin + hub + destination, boundary statuses once
"""

from typing import Dict, List, Tuple

from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.models.package_status import (
    PackageStatus,
    RegionPhase,
    PHASE_ORDER,
    PHASE_STATUSES,
)


def _concat_phases(phases: Tuple[RegionPhase, ...]) -> Tuple[PackageStatus, ...]:
    merged: List[PackageStatus] = []
    for phase in phases:
        for status in PHASE_STATUSES[phase]:
            if status not in merged:
                merged.append(status)
    return tuple(merged)


ROLE_PHASES: Dict[ActorRole, Tuple[RegionPhase, ...]] = {
    ActorRole.ORIGIN_AGENT: (RegionPhase.ORIGIN,),
    ActorRole.HUB_AGENT: (RegionPhase.HUB,),
    ActorRole.DESTINATION_AGENT: (RegionPhase.DESTINATION,),
    ActorRole.ADMIN: PHASE_ORDER,
}

ROLE_STATUSES: Dict[ActorRole, Tuple[PackageStatus, ...]] = {
    role: _concat_phases(phases) for role, phases in ROLE_PHASES.items()
}


class TransitionPolicy:

    @staticmethod
    def owned_statuses(role: ActorRole) -> Tuple[PackageStatus, ...]:
        """Statuses the role can see and act on, in pipeline order."""
        return ROLE_STATUSES.get(ActorRole(role), ())

    @staticmethod
    def owns_status(role: ActorRole, status: PackageStatus) -> bool:
        return PackageStatus(status) in TransitionPolicy.owned_statuses(role)

    @staticmethod
    def next_allowed(role: ActorRole, current_status: PackageStatus) -> List[PackageStatus]:
        """
        Ordered statuses the role may legally set from current_status.

        Returns every status strictly after current_status in the role's list,
        or an empty list when the role does not own current_status (this
        includes ISSUE_REPORTED, which no phase contains).
        """
        owned = TransitionPolicy.owned_statuses(role)
        current = PackageStatus(current_status)
        if current not in owned:
            return []
        return list(owned[owned.index(current) + 1:])

    @staticmethod
    def is_allowed(role: ActorRole, current_status: PackageStatus, requested_status: PackageStatus) -> bool:
        requested = PackageStatus(requested_status)
        if requested == PackageStatus.ISSUE_REPORTED:
            return TransitionPolicy.can_report_issue(role, current_status)
        return requested in TransitionPolicy.next_allowed(role, current_status)

    @staticmethod
    def can_report_issue(role: ActorRole, current_status: PackageStatus) -> bool:
        """Any operational role may flag a package, wherever it is, unless already flagged."""
        return ActorRole(role) in ROLE_STATUSES and PackageStatus(current_status) != PackageStatus.ISSUE_REPORTED

    @staticmethod
    def actionable_statuses(role: ActorRole) -> Tuple[PackageStatus, ...]:
        """Statuses from which the role has at least one legal move."""
        return TransitionPolicy.owned_statuses(role)[:-1]
