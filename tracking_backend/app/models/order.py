"""
Order database model.

Holds the denormalized copy of its packages and their aggregate status.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON
from sqlalchemy.sql import func
from tracking_backend.app.db.session import Base
from tracking_backend.app.models.package_status import PackageStatus


class Order(Base):
    """
    Order model.

    `packages` is an ordered JSON list of package snapshots; `status` must
    always equal the aggregate of those snapshots.
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True, index=True)

    customer_id = Column(String(64), nullable=False, index=True)
    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    shipping_address = Column(String(500), nullable=True)
    source = Column(String(50), nullable=True)

    # Embedded package snapshots (dual-store copy)
    packages = Column(JSON, nullable=False, default=list)

    # Aggregate status
    status = Column(Enum(PackageStatus), nullable=False, index=True)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Order(id={self.id}, customer_id={self.customer_id}, status='{self.status.value}')>"
