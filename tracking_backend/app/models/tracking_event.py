"""
Tracking Event database model.

Append-only audit trail of package status transitions.
"""

from sqlalchemy import Column, String, DateTime, Enum, JSON, Text
from tracking_backend.app.db.session import Base
from tracking_backend.app.models.package_status import PackageStatus


class TrackingEvent(Base):
    """
    One status transition of one package. Never updated after insert.
    """
    __tablename__ = "tracking_events"

    id = Column(String(64), primary_key=True, index=True)
    package_id = Column(String(64), nullable=False, index=True)

    # Status transitioned from and to
    previous_status = Column(Enum(PackageStatus), nullable=True)
    status = Column(Enum(PackageStatus), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    actor_id = Column(String(64), nullable=False)
    location = Column(String(200), nullable=False, default="")
    notes = Column(Text, nullable=True)
    photo_urls = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<TrackingEvent(id={self.id}, package_id={self.package_id}, status='{self.status.value}')>"
