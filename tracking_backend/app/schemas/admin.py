"""
Admin API Schema Definitions.

Pydantic schemas for admin endpoints.
"""

from pydantic import BaseModel
from typing import Dict


class StatsResponse(BaseModel):
    """System-wide shipment counters."""
    total_orders: int
    total_packages: int
    status_counts: Dict[str, int]
    orders_with_issues: int


class ReconcileResponse(BaseModel):
    """Result of rebuilding normalized packages from order snapshots."""
    synced: int
