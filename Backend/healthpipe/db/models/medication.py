from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class Medication(Base):
    __tablename__ = "medications"

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    medication_name: Mapped[str] = mapped_column(String(256), index=True, nullable=False)
    dosage_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    dosage_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    dosage_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    frequency: Mapped[str | None] = mapped_column(String(64), nullable=True)
    taken_at: Mapped[str | None] = mapped_column(String(19), nullable=True)  # the record's timestamp
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
