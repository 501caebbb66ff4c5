import logging
from collections.abc import Callable, Iterable
from typing import Any

from healthpipe.db.schemas import BaseRecord, ErrorDetail
from healthpipe.errors import UnparseableTimestamp
from healthpipe.records import DEFAULT_REQUIRED_FIELDS, validate_record

logger = logging.getLogger(__name__)

ItemMapper = Callable[[Any], BaseRecord | None]


def read_text(path: str) -> str:
    """Whole file as text: UTF-8 (BOM tolerated), falling back to latin-1."""
    with open(path, "rb") as f:
        data = f.read()
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.info(f"{path} is not UTF-8; decoding as latin-1")
        return data.decode("latin-1")


def map_items(
    path: str,
    items: Iterable[Any],
    mapper: ItemMapper,
    *,
    required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS,
    label: str = "item",
) -> tuple[list[BaseRecord], list[ErrorDetail]]:
    """
    Run mapper over items. A mapper returning None skips the item silently;
    one that raises costs only that item, which is reported as an ErrorDetail.
    """
    required_fields = tuple(required_fields)
    records = []
    errors = []
    for index, item in enumerate(items, start=1):
        try:
            record = mapper(item)
        except (UnparseableTimestamp, ValueError, TypeError, KeyError) as e:
            logger.warning(f"{path}: skipping {label} {index}: {e}")
            errors.append(ErrorDetail(kind=type(e).__name__, message=f"{label} {index}: {e}", path=path))
            continue
        except Exception as e:
            logger.exception(f"{path}: unexpected error mapping {label} {index}")
            errors.append(ErrorDetail(kind=type(e).__name__, message=f"{label} {index}: {e}", path=path))
            continue
        if record is None:
            continue
        if not validate_record(record, required_fields):
            missing = next(f for f in required_fields if getattr(record, f, None) is None)
            errors.append(ErrorDetail(
                kind="ValidationFailure",
                message=f"{label} {index}: missing required field {missing}",
                record_id=str(record.id),
                source=record.source,
                field=missing,
                path=path,
            ))
            continue
        records.append(record)
    return records, errors
