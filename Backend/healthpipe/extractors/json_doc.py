import json
import logging
from collections.abc import Iterable

from healthpipe.db.schemas import ExtractionResult
from healthpipe.errors import ExtractionFailure
from healthpipe.extractors.base import ItemMapper, map_items, read_text
from healthpipe.records import DEFAULT_REQUIRED_FIELDS

logger = logging.getLogger(__name__)


def _items(path: str, document, items_key: str | None) -> list:
    if items_key is not None:
        if not isinstance(document, dict):
            raise ExtractionFailure(path, f"expected an object holding {items_key!r}")
        if items_key not in document:
            logger.warning(f"{path} has no {items_key!r} key")
            return []
        document = document[items_key]
    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        return [document]
    raise ExtractionFailure(path, f"unsupported JSON document of type {type(document).__name__}")


def extract_json_file(
    path: str,
    item_mapper: ItemMapper,
    items_key: str | None = None,
    *,
    required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS,
) -> ExtractionResult:
    """
    Map a JSON document to records: a top-level list, the list under
    items_key, or a single object.
    """
    try:
        text = read_text(path)
    except OSError as e:
        raise ExtractionFailure(path, str(e)) from e
    if not text.strip():
        return ExtractionResult(path=path)

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionFailure(path, f"invalid JSON: {e}") from e

    records, errors = map_items(
        path, _items(path, document, items_key), item_mapper, required_fields=required_fields
    )
    logger.info(f"Processed {len(records)} records from {path} ({len(errors)} errors)")
    return ExtractionResult(path=path, records=tuple(records), errors=tuple(errors))
