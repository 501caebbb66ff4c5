from __future__ import annotations
import uuid
from datetime import date, datetime
from sqlalchemy import String, Date, DateTime, Text, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class HealthRecord(Base):
    __tablename__ = "health_records"
    __table_args__ = (
        Index("ix_health_records_source_data_type", "source", "data_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    timestamp: Mapped[str] = mapped_column(String(19), index=True, nullable=False)  # MM/DD/YYYY HH:MM:SS
    recorded_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    date_only: Mapped[date] = mapped_column(Date, index=True, nullable=False)

    source: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    data_type: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    sub_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    processed_at: Mapped[str | None] = mapped_column(String(19), nullable=True)
    raw_data: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON of the source document

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
