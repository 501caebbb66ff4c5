from pydantic import BaseModel, ConfigDict

from healthpipe.db.schemas.records import BaseRecord


class ErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    message: str
    record_id: str | None = None
    source: str | None = None
    field: str | None = None
    path: str | None = None


# ----------- Relational mapper -----------

class InsertResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_records: int
    inserted: int = 0
    errors: int = 0
    error_details: tuple[ErrorDetail, ...] = ()
    batches: int = 0


class DeleteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    deleted_records: int = 0
    deleted_related: int = 0


# ----------- Extraction -----------

class SamplerStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str
    total_seen: int = 0
    yielded: int = 0
    malformed: int = 0
    truncations: int = 0
    discarded_bytes: int = 0
    skipped_estimate: int = 0  # entries likely lost to buffer truncation
    max_buffered_bytes: int = 0


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    records: tuple[BaseRecord, ...] = ()
    errors: tuple[ErrorDetail, ...] = ()
    complete: bool = True
    sampler_stats: SamplerStats | None = None


# ----------- Pipeline -----------

class FileReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    records: int = 0
    errors: int = 0
    complete: bool = True
    error_details: tuple[ErrorDetail, ...] = ()


class IngestionReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    files_considered: int
    files_processed: tuple[str, ...] = ()
    file_reports: tuple[FileReport, ...] = ()
    records_total: int = 0
    errors_total: int = 0
    insert_result: InsertResult | None = None


class StoreStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_records: int = 0
    by_source: dict[str, int] = {}
    by_data_type: dict[str, int] = {}
    earliest: str | None = None
    latest: str | None = None
    table_counts: dict[str, int] = {}
