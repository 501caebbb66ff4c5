from healthpipe.db.schemas.records import BaseRecord, DataType
from healthpipe.records import create_base_record, create_metric_value
from healthpipe.utils import dates

SOURCE_NAME = "apple_health"

APPLE_HEALTH_TYPES = {
    # fitness
    "HKQuantityTypeIdentifierStepCount":                DataType.FITNESS,
    "HKQuantityTypeIdentifierDistanceWalkingRunning":   DataType.FITNESS,
    "HKQuantityTypeIdentifierActiveEnergyBurned":       DataType.FITNESS,
    "HKQuantityTypeIdentifierBasalEnergyBurned":        DataType.FITNESS,
    "HKQuantityTypeIdentifierFlightsClimbed":           DataType.FITNESS,
    # health
    "HKQuantityTypeIdentifierHeartRate":                DataType.HEALTH,
    "HKQuantityTypeIdentifierRestingHeartRate":         DataType.HEALTH,
    "HKQuantityTypeIdentifierHeartRateVariabilitySDNN": DataType.HEALTH,
    "HKQuantityTypeIdentifierBloodPressureSystolic":    DataType.HEALTH,
    "HKQuantityTypeIdentifierBloodPressureDiastolic":   DataType.HEALTH,
    "HKQuantityTypeIdentifierBloodGlucose":             DataType.HEALTH,
    "HKQuantityTypeIdentifierBodyMass":                 DataType.HEALTH,
    "HKQuantityTypeIdentifierHeight":                   DataType.HEALTH,
    "HKQuantityTypeIdentifierBodyMassIndex":            DataType.HEALTH,
    "HKQuantityTypeIdentifierOxygenSaturation":         DataType.HEALTH,
    "HKQuantityTypeIdentifierBodyTemperature":          DataType.HEALTH,
    # sleep
    "HKCategoryTypeIdentifierSleepAnalysis":            DataType.SLEEP,
    # workouts
    "HKWorkoutTypeIdentifier":                          DataType.FITNESS,
}

APPLE_HEALTH_UNITS = {
    "count": "steps",
    "mi": "miles",
    "km": "kilometers",
    "Cal": "calories",
    "kcal": "calories",
    "count/min": "bpm",
    "ms": "milliseconds",
    "mmHg": "mmHg",
    "mg/dL": "mg/dL",
    "lb": "pounds",
    "kg": "kilograms",
    "in": "inches",
    "cm": "centimeters",
    "%": "percent",
    "degF": "fahrenheit",
    "degC": "celsius",
}

APPLE_HEALTH_SUBTYPES = {
    "HKQuantityTypeIdentifierStepCount": "steps",
    "HKQuantityTypeIdentifierHeartRate": "heart_rate",
    "HKQuantityTypeIdentifierDistanceWalkingRunning": "distance",
    "HKQuantityTypeIdentifierActiveEnergyBurned": "calories",
    "HKQuantityTypeIdentifierBloodPressureSystolic": "blood_pressure",
    "HKQuantityTypeIdentifierBloodPressureDiastolic": "blood_pressure",
    "HKCategoryTypeIdentifierSleepAnalysis": "sleep_analysis",
}

# Record type -> record field. Tuples name a key inside a nested field.
APPLE_HEALTH_FIELDS = {
    "HKQuantityTypeIdentifierStepCount": "steps",
    "HKQuantityTypeIdentifierDistanceWalkingRunning": "distance",
    "HKQuantityTypeIdentifierActiveEnergyBurned": "calories",
    "HKQuantityTypeIdentifierHeartRate": "heart_rate",
    "HKQuantityTypeIdentifierRestingHeartRate": "resting_heart_rate",
    "HKQuantityTypeIdentifierHeartRateVariabilitySDNN": "heart_rate_variability",
    "HKQuantityTypeIdentifierBloodPressureSystolic": ("blood_pressure", "systolic"),
    "HKQuantityTypeIdentifierBloodPressureDiastolic": ("blood_pressure", "diastolic"),
    "HKQuantityTypeIdentifierBloodGlucose": "glucose",
    "HKQuantityTypeIdentifierBodyMass": "weight",
    "HKQuantityTypeIdentifierBodyMassIndex": "bmi",
    "HKQuantityTypeIdentifierOxygenSaturation": "oxygen_saturation",
    "HKQuantityTypeIdentifierBodyTemperature": "body_temperature",
}

DURATION_CONFIDENCE = 0.9
WORKOUT_METRIC_CONFIDENCE = 0.8


def get_sub_type(record_type: str) -> str:
    return APPLE_HEALTH_SUBTYPES.get(record_type) or record_type.replace("HKQuantityTypeIdentifier", "").lower()


def get_confidence_score(source_name: str | None) -> float:
    """Device-reported data ranks above app-entered data."""
    if source_name:
        if "Apple Watch" in source_name or "iPhone" in source_name:
            return 0.9
        if "Health" in source_name:
            return 0.8
    return 0.7


def _to_float(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def record_from_attributes(attrs: dict, metadata: dict | None = None) -> BaseRecord | None:
    """
    Map one <Record> element's attributes to a BaseRecord.

    Returns None for unmapped types and for records without a start or
    creation date. UnparseableTimestamp propagates to the caller.
    """
    record_type = attrs.get("type")
    data_type = APPLE_HEALTH_TYPES.get(record_type)
    if data_type is None:
        return None

    start = attrs.get("startDate") or attrs.get("creationDate")
    if not start:
        return None

    fields = {
        "device_name": attrs.get("sourceName") or "Unknown",
        "source_version": attrs.get("sourceVersion"),
    }
    if metadata:
        fields["record_metadata"] = dict(metadata)

    raw_value = attrs.get("value")
    if raw_value is not None:
        numeric = _to_float(raw_value)
        if numeric is None:
            # Category samples (sleep stages etc.) carry a symbolic value.
            fields["category_value"] = raw_value
        else:
            unit = attrs.get("unit")
            metric = create_metric_value(
                numeric,
                APPLE_HEALTH_UNITS.get(unit, unit),
                get_confidence_score(attrs.get("sourceName")),
            )
            target = APPLE_HEALTH_FIELDS.get(record_type, "metric_value")
            if isinstance(target, tuple):
                field, key = target
                fields[field] = {key: metric}
            else:
                fields[target] = metric

    end = attrs.get("endDate")
    if end and end != start:
        fields["end_time"] = dates.normalize(end)
        duration = create_metric_value(dates.calculate_duration(start, end), "minutes", DURATION_CONFIDENCE)
        fields["duration"] = duration
        if data_type == DataType.SLEEP:
            fields["sleep_start"] = dates.normalize(start)
            fields["sleep_end"] = fields["end_time"]
            fields["sleep_duration"] = duration

    return create_base_record(
        dict(attrs),
        start,
        get_sub_type(record_type),
        source=SOURCE_NAME,
        data_type=data_type,
        **fields,
    )


def workout_from_attributes(attrs: dict) -> BaseRecord | None:
    start = attrs.get("startDate")
    if not start:
        return None
    end = attrs.get("endDate")

    fields = {
        "workout_type": attrs.get("workoutActivityType") or "Unknown",
        "start_time": dates.normalize(start),
        "device_name": attrs.get("sourceName") or "Unknown",
    }
    if end:
        fields["end_time"] = dates.normalize(end)

    duration = _to_float(attrs.get("duration"))
    if duration is not None:
        fields["duration"] = create_metric_value(duration, attrs.get("durationUnit") or "minutes", DURATION_CONFIDENCE)
    elif end:
        fields["duration"] = create_metric_value(dates.calculate_duration(start, end), "minutes", DURATION_CONFIDENCE)

    energy = _to_float(attrs.get("totalEnergyBurned"))
    if energy is not None:
        unit = attrs.get("totalEnergyBurnedUnit")
        fields["calories"] = create_metric_value(
            energy, APPLE_HEALTH_UNITS.get(unit, unit) or "calories", WORKOUT_METRIC_CONFIDENCE
        )

    distance = _to_float(attrs.get("totalDistance"))
    if distance is not None:
        unit = attrs.get("totalDistanceUnit")
        fields["distance"] = create_metric_value(
            distance, APPLE_HEALTH_UNITS.get(unit, unit) or "miles", WORKOUT_METRIC_CONFIDENCE
        )

    return create_base_record(
        dict(attrs),
        start,
        "workout",
        source=SOURCE_NAME,
        data_type=DataType.FITNESS,
        **fields,
    )
