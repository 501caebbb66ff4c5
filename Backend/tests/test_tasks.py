from __future__ import annotations

from pathlib import Path

import pytest

from healthpipe.config import CELERY_RESULT_EXPIRES, INGEST_QUEUE
from healthpipe.core import tasks
from healthpipe.core.celery_app import celery_app
from healthpipe.db.crud.records import get_stats

EXPORT = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<HealthData>\n"
    '<Record type="HKQuantityTypeIdentifierHeartRate" sourceName="Apple Watch" unit="count/min" '
    'value="61" startDate="2020-01-01 08:00:00 +0000" endDate="2020-01-01 08:00:00 +0000"/>\n'
    '<Record type="HKQuantityTypeIdentifierStepCount" sourceName="iPhone" unit="count" '
    'value="420" startDate="2020-01-01 09:00:00 +0000" endDate="2020-01-01 09:30:00 +0000"/>\n'
    "</HealthData>\n"
)


@pytest.fixture(autouse=True)
def store(monkeypatch, session_factory):
    monkeypatch.setattr(tasks, "SessionLocal", session_factory)


@pytest.fixture
def export_path(tmp_path: Path) -> str:
    path = tmp_path / "export.xml"
    path.write_text(EXPORT, encoding="utf-8")
    return str(path)


def test_ingest_is_incremental(tmp_path: Path, export_path):
    cache_path = str(tmp_path / "cache" / "checksums.json")

    first = tasks.ingest_apple_health_task([export_path], cache_path=cache_path)
    assert first["files_processed"] == [export_path]
    assert first["insert_result"]["inserted"] == 2
    assert Path(cache_path).exists()

    second = tasks.ingest_apple_health_task([export_path], cache_path=cache_path)
    assert second["files_processed"] == []
    assert second["records_total"] == 0

    forced = tasks.ingest_apple_health_task([export_path], incremental=False, cache_path=cache_path)
    assert forced["files_processed"] == [export_path]
    assert forced["insert_result"]["inserted"] == 2


def test_full_reprocess_replaces_rather_than_duplicates(tmp_path: Path, export_path, session_factory):
    cache_path = str(tmp_path / "checksums.json")
    tasks.ingest_apple_health_task([export_path], cache_path=cache_path)
    tasks.ingest_apple_health_task([export_path], incremental=False, cache_path=cache_path)

    db = session_factory()
    try:
        stats = get_stats(db)
    finally:
        db.close()
    assert stats.total_records == 2
    assert stats.table_counts["fitness_metrics"] == 1
    assert stats.table_counts["health_vitals"] == 1


def test_delete_source_task(tmp_path: Path, export_path):
    tasks.ingest_apple_health_task([export_path], cache_path=str(tmp_path / "checksums.json"))

    assert tasks.delete_source_task("apple_health") == {"deleted_records": 2, "deleted_related": 2}
    assert tasks.delete_source_task("apple_health") == {"deleted_records": 0, "deleted_related": 0}


def test_tasks_are_routed_to_the_ingest_queue():
    for task in (tasks.ingest_apple_health_task, tasks.delete_source_task):
        assert task.name in celery_app.tasks
        assert celery_app.conf.task_routes[task.name] == {"queue": INGEST_QUEUE}
    assert celery_app.conf.task_acks_late is True
    assert celery_app.conf.worker_prefetch_multiplier == 1
    assert celery_app.conf.result_expires == CELERY_RESULT_EXPIRES
