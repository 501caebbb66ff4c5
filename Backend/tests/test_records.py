from __future__ import annotations

import uuid

import pytest
from pydantic import ValidationError

from healthpipe.db.schemas import BaseRecord, DataType, MetricValue
from healthpipe.errors import UnparseableTimestamp
from healthpipe.records import create_base_record, create_metric_value, record_to_json, validate_record
from healthpipe.utils import dates


def _heart_rate_record(**fields):
    return create_base_record(
        {"hr": "72"},
        "2020-01-01 08:00:00",
        "heart_rate",
        source="manual_health",
        data_type=DataType.HEALTH,
        heart_rate=create_metric_value("72", "bpm"),
        **fields,
    )


def test_create_base_record_stamps_identity_and_times():
    record = _heart_rate_record()

    assert isinstance(record.id, uuid.UUID)
    assert record.timestamp == "01/01/2020 08:00:00"
    assert dates.is_valid_format(record.processed_at)
    assert record.data_type is DataType.HEALTH
    assert record.sub_type == "heart_rate"
    assert record.heart_rate == MetricValue(value=72.0, unit="bpm", confidence=1.0)
    assert "heart_rate" in record.extra_fields


def test_records_get_distinct_ids():
    assert _heart_rate_record().id != _heart_rate_record().id


def test_default_data_type_is_mixed():
    record = create_base_record({}, "2020-01-01", source="misc")
    assert record.data_type is DataType.MIXED


def test_bad_timestamp_propagates():
    with pytest.raises(UnparseableTimestamp):
        create_base_record({}, "yesterday-ish", source="manual_health")


def test_records_are_immutable():
    record = _heart_rate_record()
    with pytest.raises(ValidationError):
        record.source = "other"


def test_validate_record_accepts_complete_record():
    assert validate_record(_heart_rate_record())


def test_validate_record_reports_missing_fields():
    assert not validate_record({"source": "x"})
    assert not validate_record({"timestamp": None})
    assert not validate_record(_heart_rate_record(), required_fields=("timestamp", "glucose"))
    assert validate_record({"timestamp": "01/01/2020 00:00:00"})


def test_validate_record_never_raises():
    assert not validate_record(object())


def test_create_metric_value_coerces_numbers():
    metric = create_metric_value("98.6", "fahrenheit", "0.5")
    assert metric.value == 98.6
    assert metric.confidence == 0.5


def test_create_metric_value_rejects_non_numeric():
    with pytest.raises(ValueError):
        create_metric_value("lots", "steps")


def test_confidence_must_be_within_unit_interval():
    with pytest.raises(ValidationError):
        create_metric_value(1, "steps", 1.5)


def test_record_to_json_uses_canonical_keys():
    record = _heart_rate_record(blood_pressure={"systolic": create_metric_value(120, "mmHg")})
    data = record_to_json(record)

    assert data["id"] == str(record.id)
    assert data["dataType"] == "health"
    assert data["subType"] == "heart_rate"
    assert data["processed_at"] == record.processed_at
    assert data["raw_data"] == {"hr": "72"}
    assert data["heart_rate"] == {"value": 72.0, "unit": "bpm", "confidence": 1.0}
    assert data["blood_pressure"]["systolic"]["value"] == 120.0


def test_record_round_trips_through_json_form():
    record = _heart_rate_record()
    restored = BaseRecord.model_validate(record_to_json(record))
    assert restored.id == record.id
    assert restored.data_type is DataType.HEALTH
