"""
Package Pydantic schemas.

Defines the package records exchanged with the dual-store repository and the
request and response models of the package endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from tracking_backend.app.models.package_status import PackageStatus


class PackageRecord(BaseModel):
    """
    A package as stored in either representation.

    The normalized row and the snapshot embedded in the order carry the same
    fields; `version` belongs to the normalized row only.
    """
    id: str
    order_id: Optional[str] = None
    current_status: PackageStatus
    tracking_number: str = ""
    internal_tracking_code: Optional[str] = None
    description: Optional[str] = None
    weight: Optional[float] = None
    dimensions: Optional[str] = None
    declared_value: Optional[float] = None
    photo_urls: List[str] = Field(default_factory=list)
    version: int = 1

    class Config:
        from_attributes = True

    def snapshot(self) -> dict:
        """JSON form used for the order-embedded copy."""
        return self.model_dump(mode="json", exclude={"version"})


class PackageMetadataPatch(BaseModel):
    """Fields an agent may change alongside (or without) a status change."""
    tracking_number: Optional[str] = Field(None, max_length=100)
    internal_tracking_code: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    weight: Optional[float] = Field(None, gt=0, description="Weight in kilograms")
    dimensions: Optional[str] = Field(None, max_length=50, description="LxWxH")
    declared_value: Optional[float] = Field(None, ge=0)
    photo_urls: Optional[List[str]] = None


class StatusUpdateRequest(BaseModel):
    """Schema for moving a package to a new status."""
    status: PackageStatus
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)
    metadata: Optional[PackageMetadataPatch] = None


class IssueReportRequest(BaseModel):
    """Schema for flagging a package with ISSUE_REPORTED."""
    location: Optional[str] = Field(None, max_length=200)
    notes: str = Field(..., min_length=1, max_length=2000, description="What went wrong")


class IssueClearRequest(BaseModel):
    """Schema for returning a flagged package to the pipeline."""
    restore_status: Optional[PackageStatus] = Field(
        None, description="Defaults to the last pipeline status in the tracking history"
    )
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)


class NextStatusesResponse(BaseModel):
    """Statuses the calling role may set next."""
    package_id: str
    current_status: PackageStatus
    next_statuses: List[PackageStatus]


class TrackingEventRecord(BaseModel):
    """Immutable tracking event."""
    id: str
    package_id: str
    status: PackageStatus
    previous_status: Optional[PackageStatus] = None
    timestamp: datetime
    actor_id: str
    location: str = ""
    notes: Optional[str] = None
    photo_urls: Optional[List[str]] = None

    class Config:
        from_attributes = True


class TrackingHistoryResponse(BaseModel):
    """Tracking history, newest first."""
    package_id: str
    events: List[TrackingEventRecord]


class WorkloadResponse(BaseModel):
    """Packages the calling role can currently act on."""
    packages: List[PackageRecord]
    total: int
