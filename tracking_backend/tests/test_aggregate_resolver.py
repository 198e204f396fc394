"""
Unit tests for the aggregate status resolver.
"""

import itertools
import pytest

from tracking_backend.app.core.exceptions import MalformedOrderError
from tracking_backend.app.domain.workflow.aggregate_resolver import AggregateStatusResolver
from tracking_backend.app.models.package_status import PackageStatus, is_ranked, rank
from tracking_backend.app.schemas.package import PackageRecord

SAMPLE = [
    PackageStatus.PURCHASED_FROM_SELLER,
    PackageStatus.RECEIVED_AT_ORIGIN,
    PackageStatus.SHIPPED_TO_HUB,
    PackageStatus.ARRIVED_HUB,
    PackageStatus.DELIVERED,
    PackageStatus.ISSUE_REPORTED,
]


def _packages(*statuses):
    return [
        PackageRecord(id=f"p{i}", order_id="o1", current_status=status)
        for i, status in enumerate(statuses)
    ]


def test_lower_rank_wins():
    packages = _packages(PackageStatus.ARRIVED_HUB, PackageStatus.RECEIVED_AT_ORIGIN)
    assert AggregateStatusResolver.resolve(packages) == PackageStatus.RECEIVED_AT_ORIGIN


def test_all_issue_reported_falls_back_to_issue_reported():
    packages = _packages(PackageStatus.ISSUE_REPORTED, PackageStatus.ISSUE_REPORTED)
    assert AggregateStatusResolver.resolve(packages) == PackageStatus.ISSUE_REPORTED


@pytest.mark.parametrize("status", list(PackageStatus))
def test_single_package_returns_its_status(status):
    assert AggregateStatusResolver.resolve(_packages(status)) == status


def test_issue_reported_is_masked_by_ranked_packages():
    packages = _packages(PackageStatus.ISSUE_REPORTED, PackageStatus.OUT_FOR_DELIVERY)

    assert AggregateStatusResolver.resolve(packages) == PackageStatus.OUT_FOR_DELIVERY
    assert AggregateStatusResolver.has_reported_issue(packages)


def test_ties_resolve_to_shared_status():
    packages = _packages(PackageStatus.QC_CHECKED, PackageStatus.QC_CHECKED, PackageStatus.DELIVERED)
    assert AggregateStatusResolver.resolve(packages) == PackageStatus.QC_CHECKED


@pytest.mark.parametrize("statuses", list(itertools.combinations_with_replacement(SAMPLE, 3)))
def test_aggregate_is_minimum_ranked_status(statuses):
    ranked = [s for s in statuses if is_ranked(s)]
    expected = min(ranked, key=rank) if ranked else PackageStatus.ISSUE_REPORTED

    assert AggregateStatusResolver.resolve(_packages(*statuses)) == expected


def test_resolve_is_repeatable_and_pure():
    packages = _packages(PackageStatus.REPACKING, PackageStatus.QC_CHECKED)
    before = [p.model_dump() for p in packages]

    first = AggregateStatusResolver.resolve(packages)
    second = AggregateStatusResolver.resolve(packages)

    assert first == second == PackageStatus.QC_CHECKED
    assert [p.model_dump() for p in packages] == before


def test_bare_statuses_are_accepted():
    assert AggregateStatusResolver.resolve(["DELIVERED", PackageStatus.ARRIVED_HUB]) == PackageStatus.ARRIVED_HUB


def test_empty_order_is_malformed():
    with pytest.raises(MalformedOrderError) as exc_info:
        AggregateStatusResolver.resolve([], order_id="o-empty")
    assert exc_info.value.details["order_id"] == "o-empty"


def test_has_reported_issue_false_without_flags():
    assert not AggregateStatusResolver.has_reported_issue(_packages(PackageStatus.DELIVERED))
