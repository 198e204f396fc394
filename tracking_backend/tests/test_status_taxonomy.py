"""
Unit tests for the package status taxonomy.
"""

import pytest

from tracking_backend.app.models.package_status import (
    PackageStatus,
    RegionPhase,
    PIPELINE,
    PHASE_ORDER,
    PHASE_STATUSES,
    STATUS_RANK,
    UnrankedStatusError,
    is_ranked,
    phases_of,
    rank,
)


def test_pipeline_excludes_issue_reported():
    assert len(PIPELINE) == 14
    assert PackageStatus.ISSUE_REPORTED not in PIPELINE
    assert set(PIPELINE) | {PackageStatus.ISSUE_REPORTED} == set(PackageStatus)


def test_rank_follows_pipeline_not_declaration_order():
    assert rank(PackageStatus.PURCHASED_FROM_SELLER) == 0
    assert rank(PackageStatus.DELIVERED) == 13
    assert rank(PackageStatus.RECEIVED_AT_ORIGIN) < rank(PackageStatus.ARRIVED_HUB)
    assert [rank(s) for s in PIPELINE] == list(range(len(PIPELINE)))


def test_rank_rejects_issue_reported():
    assert not is_ranked(PackageStatus.ISSUE_REPORTED)
    with pytest.raises(UnrankedStatusError):
        rank(PackageStatus.ISSUE_REPORTED)
    # Still a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        rank(PackageStatus.ISSUE_REPORTED)


def test_rank_accepts_raw_values():
    assert rank("QC_CHECKED") == STATUS_RANK[PackageStatus.QC_CHECKED]


def test_phase_union_equals_pipeline():
    merged = []
    for phase in PHASE_ORDER:
        for status in PHASE_STATUSES[phase]:
            if status not in merged:
                merged.append(status)
    assert tuple(merged) == PIPELINE


def test_phases_share_boundary_statuses():
    origin = PHASE_STATUSES[RegionPhase.ORIGIN]
    hub = PHASE_STATUSES[RegionPhase.HUB]
    destination = PHASE_STATUSES[RegionPhase.DESTINATION]

    assert origin[-1] == hub[0] == PackageStatus.SHIPPED_TO_HUB
    assert hub[-1] == destination[0] == PackageStatus.SHIPPED_TO_DESTINATION
    assert destination[-1] == PackageStatus.DELIVERED


def test_phases_of_boundary_and_inner_statuses():
    assert phases_of(PackageStatus.SHIPPED_TO_HUB) == (RegionPhase.ORIGIN, RegionPhase.HUB)
    assert phases_of(PackageStatus.REPACKING) == (RegionPhase.HUB,)
    assert phases_of(PackageStatus.ISSUE_REPORTED) == ()
