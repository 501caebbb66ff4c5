from .health_record import HealthRecord
from .fitness_metric import FitnessMetric
from .health_vital import HealthVital
from .sleep_session import SleepSession
from .habit import Habit
from .symptom import Symptom
from .medication import Medication
from .location import LocationData


__all__ = [
    "HealthRecord",
    "FitnessMetric",
    "HealthVital",
    "SleepSession",
    "Habit",
    "Symptom",
    "Medication",
    "LocationData",
]
