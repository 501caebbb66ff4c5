from __future__ import annotations
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DataType(str, Enum):
    FITNESS = "fitness"
    HEALTH = "health"
    SLEEP = "sleep"
    HABITS = "habits"
    SYMPTOMS = "symptoms"
    MEDICATIONS = "medications"
    LOCATION = "location"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class MetricValue(BaseModel):
    """A single numeric observation with its unit and a 0-1 quality score."""
    model_config = ConfigDict(frozen=True)

    value: float
    unit: str | None = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class BaseRecord(BaseModel):
    """
    Unified record produced by every extractor.

    Source-specific fields (MetricValue, nested dicts of MetricValue such as
    blood_pressure, or plain scalars) ride along as extra attributes.
    """
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    timestamp: str
    source: str
    data_type: DataType = Field(alias="dataType")
    sub_type: str | None = Field(default=None, alias="subType")
    processed_at: str
    raw_data: Any = None

    @property
    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
