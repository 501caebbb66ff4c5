from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Float, Integer, Boolean, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from healthpipe.db.base import Base

class Habit(Base):
    __tablename__ = "habits"

    record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True),
                                                 ForeignKey("health_records.id", ondelete="CASCADE"),
                                                 primary_key=True)

    habit_id: Mapped[str | None] = mapped_column(String(128), index=True, nullable=True)
    habit_name: Mapped[str] = mapped_column(String(256), default="Unknown", nullable=False)
    habit_category: Mapped[str] = mapped_column(String(64), default="other", nullable=False)
    checkin_date: Mapped[str | None] = mapped_column(String(10), nullable=True)  # MM/DD/YYYY

    checkin_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    streak_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    prop_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    completed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    completion_confidence: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow,
                                                 onupdate=datetime.utcnow, nullable=False)
