from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class FitnessMetric(Base):
    __tablename__ = "fitness_metrics"

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    steps: Mapped[float | None] = mapped_column(Float, nullable=True)
    steps_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    steps_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    calories: Mapped[float | None] = mapped_column(Float, nullable=True)
    calories_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    calories_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    distance: Mapped[float | None] = mapped_column(Float, nullable=True)
    distance_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    distance_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    duration_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    fuel_points: Mapped[float | None] = mapped_column(Float, nullable=True)
    fuel_points_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    fuel_points_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    workout_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    workout_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(19), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(19), nullable=True)
    activity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    measurement_source: Mapped[str | None] = mapped_column(String(128), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
