from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, Boolean, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class Symptom(Base):
    __tablename__ = "symptoms"

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    condition: Mapped[str | None] = mapped_column(String(128), index=True, nullable=True)
    primary_symptom: Mapped[str | None] = mapped_column(String(128), nullable=True)
    symptoms_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON list of symptoms
    severity: Mapped[str | None] = mapped_column(String(32), nullable=True)
    severity_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    severity_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    pain_location: Mapped[str | None] = mapped_column(String(128), nullable=True)
    pain_intensity: Mapped[float | None] = mapped_column(Float, nullable=True)
    pain_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    impact_level: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    medication_taken: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
