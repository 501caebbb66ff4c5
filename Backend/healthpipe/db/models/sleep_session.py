from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class SleepSession(Base):
    __tablename__ = "sleep_sessions"

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    # canonical timestamps as written by the extractor
    bedtime: Mapped[str | None] = mapped_column(String(19), nullable=True)
    sleep_start: Mapped[str | None] = mapped_column(String(19), nullable=True)
    sleep_end: Mapped[str | None] = mapped_column(String(19), nullable=True)
    wake_time: Mapped[str | None] = mapped_column(String(19), nullable=True)

    sleep_duration_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleep_duration_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_in_bed_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_in_bed_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleep_efficiency: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleep_efficiency_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleep_quality: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleep_quality_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    deep_sleep_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    light_sleep_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    rem_sleep_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    awake_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    wake_ups: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_to_sleep_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)

    wake_mood: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sleep_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    measurement_source: Mapped[str | None] = mapped_column(String(128), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
