"""
Relational mapping of BaseRecords.

One health_records row per record, plus at most one row in the child table
matching its data_type. symptoms and medications rows are written on top of
that whenever the record carries those fields. Every write is an upsert keyed
by the record id, so loading the same records twice leaves the store as it
was after the first load.
"""

import json
import logging
import math
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthpipe.config import INSERT_BATCH_SIZE
from healthpipe.db.models import (
    FitnessMetric,
    Habit,
    HealthRecord,
    HealthVital,
    LocationData,
    Medication,
    SleepSession,
    Symptom,
)
from healthpipe.db.schemas import (
    BaseRecord,
    DataType,
    DeleteResult,
    ErrorDetail,
    InsertResult,
    MetricValue,
    StoreStats,
)
from healthpipe.errors import MappingFailure
from healthpipe.utils import dates

logger = logging.getLogger(__name__)

CHILD_MODELS = (FitnessMetric, HealthVital, SleepSession, Habit, Symptom, Medication, LocationData)

_ON_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}
_ON_DUPLICATE_KEY_DIALECTS = ("mysql", "mariadb")


# ----------- Metric helpers -----------

def _as_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_metric_value(metric) -> float | None:
    """Numeric value of a MetricValue, a {"value": ...} dict or a bare number."""
    if isinstance(metric, MetricValue):
        return metric.value
    if isinstance(metric, Mapping):
        return _as_float(metric.get("value"))
    if isinstance(metric, (int, float)):
        return _as_float(metric)
    return None


def extract_metric_unit(metric, default_unit: str | None = None) -> str | None:
    if isinstance(metric, MetricValue):
        return metric.unit or default_unit
    if isinstance(metric, Mapping):
        return metric.get("unit") or default_unit
    return default_unit


def extract_metric_confidence(metric) -> float | None:
    """Confidence of a metric; bare numbers and dicts without one count as 1.0."""
    if isinstance(metric, MetricValue):
        return metric.confidence
    if isinstance(metric, Mapping):
        confidence = _as_float(metric.get("confidence"))
        return 1.0 if confidence is None else confidence
    if extract_metric_value(metric) is not None:
        return 1.0
    return None


def _metric_columns(metric, value_column: str, prefix: str | None = None,
                    default_unit: str | None = None, with_unit: bool = True) -> dict:
    prefix = prefix or value_column
    columns = {
        value_column: extract_metric_value(metric),
        f"{prefix}_confidence": extract_metric_confidence(metric),
    }
    if with_unit:
        columns[f"{prefix}_unit"] = extract_metric_unit(metric, default_unit)
    return columns


# ----------- Row builders -----------

def _field(record, name: str):
    return getattr(record, name, None)


def _has_any(record, names: Iterable[str]) -> bool:
    return any(_field(record, name) is not None for name in names)


def _text(value) -> str | None:
    return None if value is None else str(value)


def _record_date(record) -> str:
    return record.timestamp.split(" ")[0]


def _parent_row(record: BaseRecord) -> dict:
    recorded_at = dates.parse_canonical(record.timestamp)
    raw = record.raw_data if record.raw_data is not None else {}
    return {
        "id": record.id,
        "timestamp": record.timestamp,
        "recorded_at": recorded_at,
        "date_only": recorded_at.date(),
        "source": record.source,
        "data_type": DataType(record.data_type).value,
        "sub_type": record.sub_type,
        "processed_at": record.processed_at,
        "raw_data": json.dumps(raw, default=str),
    }


FITNESS_FIELDS = ("steps", "calories", "distance", "duration", "fuel_points", "workout_type",
                  "workout_name", "start_time", "end_time", "activity_id", "workout_id",
                  "measurement_source")


def _fitness_row(record) -> dict | None:
    if not _has_any(record, FITNESS_FIELDS):
        return None
    row = {}
    row.update(_metric_columns(_field(record, "steps"), "steps", default_unit="steps"))
    row.update(_metric_columns(_field(record, "calories"), "calories", default_unit="calories"))
    row.update(_metric_columns(_field(record, "distance"), "distance"))
    row.update(_metric_columns(_field(record, "duration"), "duration_minutes", "duration", default_unit="minutes"))
    row.update(_metric_columns(_field(record, "fuel_points"), "fuel_points"))
    row.update(
        workout_type=_text(_field(record, "workout_type")),
        workout_name=_text(_field(record, "workout_name")),
        start_time=_text(_field(record, "start_time")),
        end_time=_text(_field(record, "end_time")),
        activity_id=_text(_field(record, "activity_id") or _field(record, "workout_id")),
        measurement_source=_text(_field(record, "measurement_source")),
    )
    return row


VITALS_FIELDS = ("heart_rate", "resting_heart_rate", "heart_rate_variability", "blood_pressure",
                 "glucose", "weight", "bmi", "oxygen_saturation", "body_temperature",
                 "device_name", "measurement_source")


def _blood_pressure_columns(bp) -> dict:
    systolic = bp.get("systolic") if isinstance(bp, Mapping) else None
    diastolic = bp.get("diastolic") if isinstance(bp, Mapping) else None
    reading = systolic if systolic is not None else diastolic
    return {
        "blood_pressure_systolic": extract_metric_value(systolic),
        "blood_pressure_diastolic": extract_metric_value(diastolic),
        "blood_pressure_unit": extract_metric_unit(reading, "mmHg"),
        "blood_pressure_confidence": extract_metric_confidence(reading),
    }


def _vitals_row(record) -> dict | None:
    if not _has_any(record, VITALS_FIELDS):
        return None
    row = {}
    row.update(_metric_columns(_field(record, "heart_rate"), "heart_rate", default_unit="bpm"))
    row.update(_metric_columns(_field(record, "resting_heart_rate"), "resting_heart_rate", default_unit="bpm"))
    row.update(_metric_columns(_field(record, "heart_rate_variability"), "heart_rate_variability",
                               default_unit="ms"))
    row.update(_blood_pressure_columns(_field(record, "blood_pressure")))
    row.update(_metric_columns(_field(record, "glucose"), "glucose", default_unit="mg/dL"))
    row.update(_metric_columns(_field(record, "weight"), "weight"))
    row.update(_metric_columns(_field(record, "bmi"), "bmi"))
    row.update(_metric_columns(_field(record, "oxygen_saturation"), "oxygen_saturation", default_unit="percent"))
    row.update(_metric_columns(_field(record, "body_temperature"), "body_temperature"))
    row.update(
        device_name=_text(_field(record, "device_name")),
        measurement_source=_text(_field(record, "measurement_source")),
    )
    return row


SLEEP_FIELDS = ("bedtime", "sleep_start", "sleep_end", "wake_time", "sleep_duration", "time_in_bed",
                "sleep_efficiency", "sleep_quality", "deep_sleep", "light_sleep", "rem_sleep",
                "awake_time", "awake_minutes", "wake_ups", "time_to_sleep", "wake_mood",
                "sleep_notes", "measurement_source")


def _sleep_row(record) -> dict | None:
    if not _has_any(record, SLEEP_FIELDS):
        return None
    awake = _field(record, "awake_time")
    if awake is None:
        awake = _field(record, "awake_minutes")
    row = {
        "bedtime": _text(_field(record, "bedtime")),
        "sleep_start": _text(_field(record, "sleep_start")),
        "sleep_end": _text(_field(record, "sleep_end")),
        "wake_time": _text(_field(record, "wake_time")),
        "deep_sleep_minutes": extract_metric_value(_field(record, "deep_sleep")),
        "light_sleep_minutes": extract_metric_value(_field(record, "light_sleep")),
        "rem_sleep_minutes": extract_metric_value(_field(record, "rem_sleep")),
        "awake_minutes": extract_metric_value(awake),
        "wake_ups": extract_metric_value(_field(record, "wake_ups")),
        "time_to_sleep_minutes": extract_metric_value(_field(record, "time_to_sleep")),
        "wake_mood": _text(_field(record, "wake_mood")),
        "sleep_notes": _text(_field(record, "sleep_notes")),
        "measurement_source": _text(_field(record, "measurement_source")),
    }
    row.update(_metric_columns(_field(record, "sleep_duration"), "sleep_duration_minutes", "sleep_duration",
                               with_unit=False))
    row.update(_metric_columns(_field(record, "time_in_bed"), "time_in_bed_minutes", "time_in_bed",
                               with_unit=False))
    row.update(_metric_columns(_field(record, "sleep_efficiency"), "sleep_efficiency", with_unit=False))
    row.update(_metric_columns(_field(record, "sleep_quality"), "sleep_quality", with_unit=False))
    return row


HABIT_FIELDS = ("habit_id", "habit_name", "habit_category", "checkin_date", "checkin_count",
                "streak_days", "prop_count", "comment_count", "completed", "completion_confidence",
                "notes", "coach_me_url", "external_url")


def _count(record, name: str, default: int) -> int:
    value = extract_metric_value(_field(record, name))
    if value is None or not math.isfinite(value):
        return default
    return int(value)


def _habit_row(record) -> dict | None:
    if not _has_any(record, HABIT_FIELDS):
        return None
    completed = _field(record, "completed")
    confidence = _field(record, "completion_confidence")
    if isinstance(confidence, (MetricValue, Mapping)):
        confidence = extract_metric_confidence(confidence)
    else:
        confidence = _as_float(confidence)
    return {
        "habit_id": _text(_field(record, "habit_id")),
        "habit_name": _text(_field(record, "habit_name")) or "Unknown",
        "habit_category": _text(_field(record, "habit_category")) or "other",
        "checkin_date": _text(_field(record, "checkin_date")) or _record_date(record),
        "checkin_count": _count(record, "checkin_count", 1),
        "streak_days": _count(record, "streak_days", 0),
        "prop_count": _count(record, "prop_count", 0),
        "comment_count": _count(record, "comment_count", 0),
        "completed": True if completed is None else bool(completed),
        "completion_confidence": 1.0 if confidence is None else confidence,
        "notes": _text(_field(record, "notes")),
        "external_url": _text(_field(record, "coach_me_url") or _field(record, "external_url")),
    }


LOCATION_FIELDS = ("location", "latitude", "longitude", "location_name", "activity_type",
                   "visit_start", "visit_end", "visit_duration", "distance_km")


def _location_row(record) -> dict | None:
    if not _has_any(record, LOCATION_FIELDS):
        return None
    location = _field(record, "location")
    location = location if isinstance(location, Mapping) else {}
    latitude = location.get("latitude", _field(record, "latitude"))
    longitude = location.get("longitude", _field(record, "longitude"))
    row = {
        "latitude": _as_float(latitude),
        "longitude": _as_float(longitude),
        "location_name": _text(location.get("name") or _field(record, "location_name")),
        "activity_type": _text(_field(record, "activity_type")),
        "visit_start": _text(_field(record, "visit_start")),
        "visit_end": _text(_field(record, "visit_end")),
        "distance_km": extract_metric_value(_field(record, "distance_km")),
        "measurement_source": _text(_field(record, "measurement_source")),
    }
    row.update(_metric_columns(_field(record, "visit_duration"), "visit_duration", default_unit="minutes"))
    return row


SYMPTOM_TRIGGER_FIELDS = ("condition", "symptoms", "severity")


def _symptom_row(record) -> dict | None:
    if not _has_any(record, SYMPTOM_TRIGGER_FIELDS):
        return None
    symptoms = _field(record, "symptoms")
    severity = _field(record, "severity")
    duration = _field(record, "duration_hours")
    if duration is None:
        duration = _field(record, "duration")
    row = {
        "condition": _text(_field(record, "condition")),
        "primary_symptom": _text(_field(record, "primary_symptom")),
        "symptoms_json": None if symptoms is None else json.dumps(symptoms, default=str),
        "severity": _text(severity),
        "pain_location": _text(_field(record, "pain_location")),
        "impact_level": _text(_field(record, "impact_level") or severity),
        "notes": _text(_field(record, "notes")),
        "medication_taken": bool(_field(record, "medication_taken")),
    }
    row.update(_metric_columns(_field(record, "severity_score"), "severity_score", "severity", with_unit=False))
    row.update(_metric_columns(duration, "duration_hours", "duration", with_unit=False))
    row.update(_metric_columns(_field(record, "pain_intensity"), "pain_intensity", "pain", with_unit=False))
    return row


def _medication_row(record) -> dict | None:
    name = _field(record, "medication_name")
    if name is None:
        return None
    dosage = _field(record, "dosage")
    return {
        "medication_name": str(name),
        "dosage_value": extract_metric_value(dosage),
        "dosage_unit": extract_metric_unit(dosage),
        "dosage_confidence": extract_metric_confidence(dosage),
        "frequency": _text(_field(record, "frequency")),
        "taken_at": record.timestamp,
        "notes": _text(_field(record, "notes")),
    }


# data_type -> (child model, row builder). Symptom/medication rows are added
# independently of data_type, so those types map to nothing here.
CHILD_ROW_BUILDERS = {
    DataType.FITNESS: (FitnessMetric, _fitness_row),
    DataType.HEALTH: (HealthVital, _vitals_row),
    DataType.SLEEP: (SleepSession, _sleep_row),
    DataType.HABITS: (Habit, _habit_row),
    DataType.LOCATION: (LocationData, _location_row),
    DataType.SYMPTOMS: None,
    DataType.MEDICATIONS: None,
    DataType.MIXED: None,
    DataType.UNKNOWN: None,
}

_unmapped = set(DataType) - set(CHILD_ROW_BUILDERS)
if _unmapped:
    raise RuntimeError(f"No child row mapping for data types: {sorted(t.value for t in _unmapped)}")


# ----------- Writes -----------

def _upsert(db: Session, model, row: dict, key: str) -> None:
    dialect = db.get_bind().dialect.name
    if dialect in _ON_CONFLICT_INSERTS:
        ins = _ON_CONFLICT_INSERTS[dialect](model).values(**row)
        update_cols = {col: ins.excluded[col] for col in row if col != key}
        update_cols["updated_at"] = datetime.utcnow()
        stmt = ins.on_conflict_do_update(index_elements=[key], set_=update_cols)
    elif dialect in _ON_DUPLICATE_KEY_DIALECTS:
        ins = mysql_insert(model).values(**row)
        update_cols = {col: ins.inserted[col] for col in row if col != key}
        update_cols["updated_at"] = datetime.utcnow()
        stmt = ins.on_duplicate_key_update(**update_cols)
    else:
        db.merge(model(**row))
        return
    db.execute(stmt)


def _child_rows(record: BaseRecord) -> list[tuple[type, dict]]:
    rows = []
    mapping = CHILD_ROW_BUILDERS[DataType(record.data_type)]
    if mapping is not None:
        model, build = mapping
        row = build(record)
        if row is not None:
            rows.append((model, row))
    for model, build in ((Symptom, _symptom_row), (Medication, _medication_row)):
        row = build(record)
        if row is not None:
            rows.append((model, row))
    return rows


def insert_single_record(db: Session, record: BaseRecord) -> None:
    parent = _parent_row(record)
    children = _child_rows(record)
    _upsert(db, HealthRecord, parent, "id")
    for model, row in children:
        row["record_id"] = record.id
        _upsert(db, model, row, "record_id")


def _coerce_record(record) -> BaseRecord:
    if isinstance(record, BaseRecord):
        return record
    return BaseRecord.model_validate(record)


def _describe(record) -> tuple[str | None, str | None]:
    if isinstance(record, BaseRecord):
        return str(record.id), record.source
    if isinstance(record, Mapping):
        record_id = record.get("id")
        return (None if record_id is None else str(record_id)), record.get("source")
    return None, None


def insert_records(
    db: Session,
    records: Iterable[BaseRecord | Mapping],
    *,
    batch_size: int = INSERT_BATCH_SIZE,
) -> InsertResult:
    """
    Upsert records in batches of batch_size, one transaction per batch.

    Each record runs inside its own SAVEPOINT: a record that fails is rolled
    back alone and reported in error_details while the rest of its batch
    commits. A failed commit is rolled back and re-raised.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    records = list(records)
    inserted = 0
    error_details = []
    batches = 0

    for start in range(0, len(records), batch_size):
        batch = records[start:start + batch_size]
        for raw in batch:
            savepoint = db.begin_nested()
            try:
                insert_single_record(db, _coerce_record(raw))
            except Exception as e:
                savepoint.rollback()
                record_id, source = _describe(raw)
                failure = MappingFailure(record_id, f"{type(e).__name__}: {e}")
                logger.warning(f"Failed to insert record {record_id} from {source}: {failure}")
                error_details.append(ErrorDetail(
                    kind="MappingFailure",
                    message=str(failure),
                    record_id=record_id,
                    source=source,
                ))
            else:
                savepoint.commit()
                inserted += 1
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Commit failed for batch starting at record {start}")
            raise
        batches += 1
        logger.info(f"Committed batch {batches} ({len(batch)} records)")

    return InsertResult(
        total_records=len(records),
        inserted=inserted,
        errors=len(error_details),
        error_details=tuple(error_details),
        batches=batches,
    )


def delete_by_source(db: Session, *, source: str) -> DeleteResult:
    """Remove every record of a source and its child rows in one transaction."""
    record_ids = select(HealthRecord.id).where(HealthRecord.source == source)
    deleted_related = 0
    try:
        for model in CHILD_MODELS:
            stmt = delete(model).where(model.record_id.in_(record_ids))
            result = db.execute(stmt.execution_options(synchronize_session=False))
            deleted_related += result.rowcount or 0
        stmt = delete(HealthRecord).where(HealthRecord.source == source)
        result = db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info(f"Deleted {result.rowcount} records ({deleted_related} related rows) for source {source}")
    return DeleteResult(deleted_records=result.rowcount or 0, deleted_related=deleted_related)


# ----------- Reads -----------

def _denormalized_select():
    parent = HealthRecord.__table__
    columns = list(parent.columns)
    seen = {col.name for col in columns}
    stmt_from = parent
    for model in CHILD_MODELS:
        table = model.__table__
        for col in table.columns:
            if col.name == "record_id":
                continue
            label = col.name if col.name not in seen else f"{table.name}_{col.name}"
            seen.add(label)
            columns.append(col.label(label))
        stmt_from = stmt_from.outerjoin(table, table.c.record_id == parent.c.id)
    return select(*columns).select_from(stmt_from)


_DENORMALIZED_RECORDS = _denormalized_select()


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return dates.parse(value).date()


def get_records_by_date_range(db: Session, *, start, end) -> list[dict]:
    """Denormalized rows whose date falls in [start, end], oldest first."""
    stmt = (
        _DENORMALIZED_RECORDS
        .where(HealthRecord.date_only >= _as_date(start), HealthRecord.date_only <= _as_date(end))
        .order_by(HealthRecord.recorded_at)
    )
    return [dict(row._mapping) for row in db.execute(stmt)]


def get_records_by_source(db: Session, *, source: str) -> list[dict]:
    stmt = _DENORMALIZED_RECORDS.where(HealthRecord.source == source).order_by(HealthRecord.recorded_at)
    return [dict(row._mapping) for row in db.execute(stmt)]


def record_exists(db: Session, *, record_id) -> bool:
    try:
        key = record_id if isinstance(record_id, uuid.UUID) else uuid.UUID(str(record_id))
    except ValueError:
        return False
    return db.scalar(select(HealthRecord.id).where(HealthRecord.id == key)) is not None


def get_stats(db: Session) -> StoreStats:
    total = db.scalar(select(func.count()).select_from(HealthRecord)) or 0
    by_source = db.execute(
        select(HealthRecord.source, func.count()).group_by(HealthRecord.source)
    ).all()
    by_data_type = db.execute(
        select(HealthRecord.data_type, func.count()).group_by(HealthRecord.data_type)
    ).all()
    earliest, latest = db.execute(
        select(func.min(HealthRecord.recorded_at), func.max(HealthRecord.recorded_at))
    ).one()
    table_counts = {
        model.__tablename__: db.scalar(select(func.count()).select_from(model)) or 0
        for model in CHILD_MODELS
    }
    return StoreStats(
        total_records=total,
        by_source={source: count for source, count in by_source},
        by_data_type={data_type: count for data_type, count in by_data_type},
        earliest=earliest.strftime(dates.CANONICAL_FORMAT) if earliest else None,
        latest=latest.strftime(dates.CANONICAL_FORMAT) if latest else None,
        table_counts=table_counts,
    )
