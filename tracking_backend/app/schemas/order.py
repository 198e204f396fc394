"""
Order Pydantic schemas.

Defines the order record and the request and response models of the order endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict
from tracking_backend.app.models.package_status import PackageStatus, INITIAL_STATUS
from tracking_backend.app.schemas.package import PackageMetadataPatch, PackageRecord


class OrderRecord(BaseModel):
    """An order with its embedded package snapshots."""
    id: str
    customer_id: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    source: Optional[str] = None
    packages: List[PackageRecord] = Field(default_factory=list)
    status: PackageStatus
    version: int = 1
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def find_package(self, package_id: str) -> Optional[PackageRecord]:
        for package in self.packages:
            if package.id == package_id:
                return package
        return None


class PackageCreate(BaseModel):
    """One order line item."""
    tracking_number: str = Field("", max_length=100)
    internal_tracking_code: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    weight: Optional[float] = Field(None, gt=0)
    dimensions: Optional[str] = Field(None, max_length=50)
    declared_value: Optional[float] = Field(None, ge=0)


class OrderCreate(BaseModel):
    """Schema for placing an order."""
    customer_id: str = Field(..., min_length=1, max_length=64)
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=50)
    shipping_address: Optional[str] = Field(None, max_length=500)
    source: Optional[str] = Field(None, max_length=50, description="Marketplace the goods were bought from")
    packages: List[PackageCreate] = Field(..., min_length=1)
    initial_status: PackageStatus = INITIAL_STATUS


class OrderResponse(BaseModel):
    """Order as shown to callers, with a freshly resolved aggregate."""
    order: OrderRecord
    aggregate_status: PackageStatus
    has_reported_issue: bool


class OrderListResponse(BaseModel):
    """Schema for order list."""
    orders: List[OrderResponse]
    total: int


class OrderStatusResponse(BaseModel):
    """Read-only aggregate status of an order."""
    order_id: str
    status: PackageStatus
    has_reported_issue: bool
    package_statuses: Dict[str, PackageStatus]


class PackageEdit(PackageMetadataPatch):
    """Metadata change for one package of an order, addressed by id."""
    id: str


class OrderUpdate(BaseModel):
    """Admin edit of an order; unset fields are left alone."""
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=50)
    shipping_address: Optional[str] = Field(None, max_length=500)
    source: Optional[str] = Field(None, max_length=50)
    packages: Optional[List[PackageEdit]] = None
