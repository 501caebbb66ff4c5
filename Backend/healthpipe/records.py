"""
Record construction and validation shared by every extractor.

- create_base_record: stamps id, canonical timestamp and processed_at
- create_metric_value: numeric observation with unit and confidence
- validate_record: required-field check that reports instead of raising
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from healthpipe.db.schemas.records import BaseRecord, DataType, MetricValue
from healthpipe.errors import ValidationFailure
from healthpipe.utils import dates

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_FIELDS = ("timestamp",)


def create_base_record(
    raw_data: Any,
    timestamp,
    sub_type: str | None = None,
    *,
    source: str,
    data_type: DataType | str = DataType.MIXED,
    timezone: str | None = None,
    **fields: Any,
) -> BaseRecord:
    """
    Build a BaseRecord for one source observation.

    UnparseableTimestamp propagates so the caller can drop this record and
    carry on with the rest of the file.
    """
    return BaseRecord(
        timestamp=dates.normalize(timestamp, timezone),
        source=source,
        data_type=DataType(data_type),
        sub_type=sub_type,
        processed_at=dates.get_current_timestamp(),
        raw_data=raw_data,
        **fields,
    )


def create_metric_value(value, unit: str | None, confidence=1.0) -> MetricValue:
    return MetricValue(value=float(value), unit=unit, confidence=float(confidence))


def _get_field(record, field: str):
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def require_fields(record, required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS) -> None:
    for field in required_fields:
        if _get_field(record, field) is None:
            raise ValidationFailure(field, record_id=_get_field(record, "id"))


def validate_record(record, required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS) -> bool:
    """Return False (and log the first missing field) instead of raising."""
    try:
        require_fields(record, required_fields)
    except ValidationFailure as e:
        logger.warning(f"Dropping record {e.record_id}: {e}")
        return False
    return True


def record_to_json(record: BaseRecord) -> dict:
    """Canonical JSON form: id, timestamp, source, dataType, subType, processed_at, raw_data, extras."""
    return record.model_dump(mode="json", by_alias=True)
