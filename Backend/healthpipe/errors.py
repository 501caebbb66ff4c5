"""Error types raised inside the ingestion pipeline.

Per-record and per-file failures are caught close to where they happen and
folded into result values; only store-level failures reach the caller.
"""


class HealthPipeError(Exception):
    """Base class for pipeline errors."""


class UnparseableTimestamp(HealthPipeError, ValueError):
    def __init__(self, value, reason: str | None = None):
        self.value = value
        message = f"Unable to parse date: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationFailure(HealthPipeError):
    def __init__(self, field: str, record_id=None):
        self.field = field
        self.record_id = record_id
        super().__init__(f"Missing required field: {field}")


class ExtractionFailure(HealthPipeError):
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Failed to process file {path}: {message}")


class StreamFailure(HealthPipeError):
    """The byte source behind the streaming sampler failed mid-read."""


class MappingFailure(HealthPipeError):
    def __init__(self, record_id, message: str):
        self.record_id = record_id
        super().__init__(message)


class CacheCorruption(HealthPipeError):
    """Checksum cache file exists but cannot be read back as a flat map."""
