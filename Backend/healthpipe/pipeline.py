"""
One ingestion run: change detection, extraction, storage, cache update.

The caller owns the ChecksumCache and decides when to persist it.
"""

import logging
from collections.abc import Callable, Iterable

from sqlalchemy.orm import Session

from healthpipe.config import INSERT_BATCH_SIZE
from healthpipe.db.crud.records import insert_records
from healthpipe.db.schemas import ErrorDetail, ExtractionResult, FileReport, IngestionReport
from healthpipe.errors import ExtractionFailure
from healthpipe.utils.checksums import ChecksumCache

logger = logging.getLogger(__name__)

Extractor = Callable[[str], ExtractionResult]


def _failed_report(path: str, failure: ExtractionFailure) -> FileReport:
    return FileReport(
        path=path,
        errors=1,
        complete=False,
        error_details=(ErrorDetail(kind="ExtractionFailure", message=str(failure), path=path),),
    )


def run_ingestion(
    paths: Iterable[str],
    extractor: Extractor,
    *,
    cache: ChecksumCache | None = None,
    db: Session | None = None,
    batch_size: int = INSERT_BATCH_SIZE,
) -> IngestionReport:
    paths = list(paths)
    todo = cache.get_changed_files(paths) if cache is not None else paths
    logger.info(f"{len(todo)} of {len(paths)} files need processing")

    records = []
    reports = []
    processed = []
    for path in todo:
        try:
            result = extractor(path)
        except ExtractionFailure as e:
            logger.error(str(e))
            reports.append(_failed_report(path, e))
            continue
        except Exception as e:
            logger.exception(f"Unexpected error extracting {path}")
            reports.append(_failed_report(path, ExtractionFailure(path, f"{type(e).__name__}: {e}")))
            continue

        records.extend(result.records)
        reports.append(FileReport(
            path=path,
            records=len(result.records),
            errors=len(result.errors),
            complete=result.complete,
            error_details=result.errors,
        ))
        if result.complete:
            processed.append(path)

    insert_result = None
    if db is not None:
        insert_result = insert_records(db, records, batch_size=batch_size)

    # Files are marked only once their records are stored.
    if cache is not None:
        for path in processed:
            try:
                cache.mark_file_processed(path)
            except OSError as e:
                logger.warning(f"Could not mark {path} processed: {e}")

    return IngestionReport(
        files_considered=len(paths),
        files_processed=tuple(processed),
        file_reports=tuple(reports),
        records_total=len(records),
        errors_total=sum(report.errors for report in reports),
        insert_result=insert_result,
    )
