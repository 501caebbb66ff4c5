from .records import BaseRecord, DataType, MetricValue
from .results import (
    DeleteResult,
    ErrorDetail,
    ExtractionResult,
    FileReport,
    IngestionReport,
    InsertResult,
    SamplerStats,
    StoreStats,
)

__all__ = [
    "BaseRecord",
    "DataType",
    "MetricValue",
    "DeleteResult",
    "ErrorDetail",
    "ExtractionResult",
    "FileReport",
    "IngestionReport",
    "InsertResult",
    "SamplerStats",
    "StoreStats",
]
