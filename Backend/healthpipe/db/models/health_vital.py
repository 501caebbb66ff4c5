from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class HealthVital(Base):
    __tablename__ = "health_vitals"

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    heart_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    heart_rate_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    heart_rate_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    resting_heart_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    resting_heart_rate_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    resting_heart_rate_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    heart_rate_variability: Mapped[float | None] = mapped_column(Float, nullable=True)
    heart_rate_variability_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    heart_rate_variability_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    blood_pressure_systolic: Mapped[float | None] = mapped_column(Float, nullable=True)
    blood_pressure_diastolic: Mapped[float | None] = mapped_column(Float, nullable=True)
    blood_pressure_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    blood_pressure_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    glucose: Mapped[float | None] = mapped_column(Float, nullable=True)
    glucose_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    glucose_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    weight_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    bmi: Mapped[float | None] = mapped_column(Float, nullable=True)
    bmi_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bmi_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    oxygen_saturation: Mapped[float | None] = mapped_column(Float, nullable=True)
    oxygen_saturation_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    oxygen_saturation_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    body_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    body_temperature_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    body_temperature_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    device_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    measurement_source: Mapped[str | None] = mapped_column(String(128), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
