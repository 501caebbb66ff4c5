import csv
import io
import logging
from collections.abc import Iterable

from healthpipe.db.schemas import ExtractionResult
from healthpipe.errors import ExtractionFailure
from healthpipe.extractors.base import ItemMapper, map_items, read_text
from healthpipe.records import DEFAULT_REQUIRED_FIELDS

logger = logging.getLogger(__name__)

SNIFF_LINES = 5


def detect_delimiter(sample: str) -> str:
    """';' only when it outnumbers ',' in the first few lines."""
    head = "\n".join(sample.splitlines()[:SNIFF_LINES])
    return ";" if head.count(";") > head.count(",") else ","


def _is_blank(row: dict) -> bool:
    return all(not value.strip() for value in row.values() if isinstance(value, str))


def extract_delimited_file(
    path: str,
    row_mapper: ItemMapper,
    *,
    required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS,
) -> ExtractionResult:
    try:
        text = read_text(path)
    except OSError as e:
        raise ExtractionFailure(path, str(e)) from e
    if not text.strip():
        return ExtractionResult(path=path)

    delimiter = detect_delimiter(text)
    try:
        rows = [
            row for row in csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
            if not _is_blank(row)
        ]
    except csv.Error as e:
        raise ExtractionFailure(path, f"malformed delimited text: {e}") from e

    records, errors = map_items(path, rows, row_mapper, required_fields=required_fields, label="row")
    logger.info(f"Processed {len(records)} records from {path} ({len(errors)} errors, delimiter {delimiter!r})")
    return ExtractionResult(path=path, records=tuple(records), errors=tuple(errors))
