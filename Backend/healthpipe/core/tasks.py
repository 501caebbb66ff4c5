import logging

from healthpipe.apple_health.parser import SOURCE_NAME
from healthpipe.config import CHECKSUM_CACHE_PATH
from healthpipe.core.celery_app import celery_app
from healthpipe.db.crud.records import delete_by_source
from healthpipe.db.engine import SessionLocal
from healthpipe.db.schema import create_tables
from healthpipe.extractors.apple_health import extract_apple_health_file
from healthpipe.pipeline import run_ingestion
from healthpipe.utils.checksums import load_checksum_cache, save_checksum_cache

logger = logging.getLogger(__name__)


@celery_app.task(name="healthpipe.ingest_apple_health")
def ingest_apple_health_task(
    paths: list[str],
    incremental: bool = True,
    cache_path: str = CHECKSUM_CACHE_PATH,
) -> dict:
    """
    Ingest Apple Health exports into the store.

    With incremental=False every stored apple_health record is deleted first
    and the given files are re-read even if unchanged, so the store ends up
    holding exactly what these files contain. Their fingerprints are still
    refreshed afterwards.
    """
    cache = load_checksum_cache(cache_path)
    if not incremental:
        for path in paths:
            cache.forget(path)

    db = SessionLocal()
    try:
        create_tables(db.get_bind())
        if not incremental:
            deleted = delete_by_source(db, source=SOURCE_NAME)
            logger.info(f"Full reprocess: cleared {deleted.deleted_records} {SOURCE_NAME} records")
        report = run_ingestion(paths, extract_apple_health_file, cache=cache, db=db)
    finally:
        db.close()

    if not save_checksum_cache(cache, cache_path):
        logger.warning("Checksum cache not saved; unchanged files will be re-read next run")

    inserted = report.insert_result.inserted if report.insert_result else 0
    logger.info(
        f"Ingested {inserted} of {report.records_total} records from "
        f"{len(report.files_processed)} files ({report.errors_total} extraction errors)"
    )
    return report.model_dump(mode="json")


@celery_app.task(name="healthpipe.delete_source")
def delete_source_task(source: str) -> dict:
    db = SessionLocal()
    try:
        result = delete_by_source(db, source=source)
    finally:
        db.close()
    return result.model_dump(mode="json")
