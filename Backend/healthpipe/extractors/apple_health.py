"""
Apple Health export.xml extraction.

Exports up to LARGE_DOCUMENT_THRESHOLD_MB are parsed in full with
ElementTree.iterparse (Record and Workout elements). Anything larger goes
through the bounded-memory sampler instead, which only sees Record entries
and stops after max_entries of them.
"""

import logging
import os
import xml.etree.ElementTree as ET

from healthpipe.apple_health.parser import record_from_attributes, workout_from_attributes
from healthpipe.config import (
    LARGE_DOCUMENT_THRESHOLD_MB,
    STREAM_CHUNK_SIZE,
    STREAM_MAX_BUFFER_BYTES,
    STREAM_MAX_ENTRIES,
    STREAM_SAMPLE_EVERY,
)
from healthpipe.db.schemas import ErrorDetail, ExtractionResult
from healthpipe.errors import ExtractionFailure, StreamFailure
from healthpipe.extractors.base import map_items
from healthpipe.utils.xml_sampler import StreamSampler

logger = logging.getLogger(__name__)


def _metadata(elem) -> dict:
    return {
        meta.get("key"): meta.get("value")
        for meta in elem.iter("MetadataEntry")
        if meta.get("key") is not None
    }


def _map_element(elem):
    if elem.tag == "Workout":
        return workout_from_attributes(dict(elem.attrib))
    return record_from_attributes(dict(elem.attrib), _metadata(elem))


def _iter_elements(path: str):
    for _, elem in ET.iterparse(path, events=("end",)):
        if elem.tag in ("Record", "Workout"):
            yield elem
            elem.clear()


def _extract_parsed(path: str) -> ExtractionResult:
    try:
        records, errors = map_items(path, _iter_elements(path), _map_element, label="element")
    except ET.ParseError as e:
        raise ExtractionFailure(path, f"invalid XML: {e}") from e
    except OSError as e:
        raise ExtractionFailure(path, str(e)) from e
    logger.info(f"Parsed {len(records)} records from {path} ({len(errors)} errors)")
    return ExtractionResult(path=path, records=tuple(records), errors=tuple(errors))


def _until_stream_failure(entries, failures: list):
    try:
        yield from entries
    except StreamFailure as e:
        failures.append(e)


def _extract_sampled(path: str, **sampler_options) -> ExtractionResult:
    try:
        f = open(path, "rb")
    except OSError as e:
        raise ExtractionFailure(path, str(e)) from e

    failures = []
    with f:
        sampler = StreamSampler(f, **sampler_options)
        records, errors = map_items(
            path,
            _until_stream_failure(sampler, failures),
            lambda entry: record_from_attributes(entry.attributes, entry.metadata),
            label="entry",
        )

    for e in failures:
        # Records mapped before the failure are kept.
        logger.error(f"Stream failed while sampling {path}: {e}")
        errors.append(ErrorDetail(kind="StreamFailure", message=str(e), path=path))

    stats = sampler.stats
    logger.info(
        f"Sampled {len(records)} records from {path} "
        f"(seen {stats.total_seen}, state {stats.state}, {stats.truncations} truncations)"
    )
    return ExtractionResult(
        path=path,
        records=tuple(records),
        errors=tuple(errors),
        complete=not failures,
        sampler_stats=stats,
    )


def extract_apple_health_file(
    path: str,
    *,
    threshold_mb: float = LARGE_DOCUMENT_THRESHOLD_MB,
    max_entries: int = STREAM_MAX_ENTRIES,
    sample_every: int = STREAM_SAMPLE_EVERY,
    chunk_size: int = STREAM_CHUNK_SIZE,
    max_buffer_bytes: int = STREAM_MAX_BUFFER_BYTES,
) -> ExtractionResult:
    try:
        size = os.path.getsize(path)
    except OSError as e:
        raise ExtractionFailure(path, str(e)) from e
    if size == 0:
        return ExtractionResult(path=path)

    size_mb = size / (1024 * 1024)
    logger.info(f"Processing Apple Health export {path}: {size_mb:.1f}MB")
    if size_mb > threshold_mb:
        return _extract_sampled(
            path,
            max_entries=max_entries,
            sample_every=sample_every,
            chunk_size=chunk_size,
            max_buffer_bytes=max_buffer_bytes,
        )
    return _extract_parsed(path)
