from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, Index, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class LocationData(Base):
    __tablename__ = "location_data"
    __table_args__ = (
        Index("ix_location_data_coords", "latitude", "longitude"),
    )

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    activity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    visit_start: Mapped[str | None] = mapped_column(String(19), nullable=True)
    visit_end: Mapped[str | None] = mapped_column(String(19), nullable=True)
    visit_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    visit_duration_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    visit_duration_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    measurement_source: Mapped[str | None] = mapped_column(String(128), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
