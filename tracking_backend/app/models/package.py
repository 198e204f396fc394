"""
Package database model.

The normalized "packages" store. Every package also lives as an embedded
snapshot inside its parent order (see Order.packages).
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.sql import func
from tracking_backend.app.db.session import Base
from tracking_backend.app.models.package_status import PackageStatus


class Package(Base):
    """
    Package model.

    One package per order line item. Mutated only through the package
    update transaction; removed only with its order.
    """
    __tablename__ = "packages"

    id = Column(String(64), primary_key=True, index=True)

    # Ownership - Package belongs to exactly one order
    order_id = Column(String(64), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Identification
    tracking_number = Column(String(100), nullable=False, default="")
    internal_tracking_code = Column(String(100), nullable=True, index=True)
    description = Column(String(500), nullable=True)

    # Physical / customs properties
    weight = Column(Float, nullable=True)
    dimensions = Column(String(50), nullable=True)
    declared_value = Column(Float, nullable=True)
    photo_urls = Column(JSON, nullable=False, default=list)

    # Status
    current_status = Column(Enum(PackageStatus), nullable=False, index=True)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Package(id={self.id}, order_id={self.order_id}, status='{self.current_status.value}')>"
