"""
Timestamp normalization.

Every source encodes time its own way (hyphenated dates with or without a
separate time part, slash dates, UTC offsets, milliseconds, the verbose
"Sat Jan 04 07:12:55 2014" style). Everything is rendered to one canonical
string, MM/DD/YYYY HH:MM:SS, before it enters a record.
"""

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from healthpipe.errors import UnparseableTimestamp

CANONICAL_FORMAT = "%m/%d/%Y %H:%M:%S"
CANONICAL_DATE_FORMAT = "%m/%d/%Y"

# Order matters: the first pattern that consumes the whole string wins.
INPUT_FORMATS = (
    "%Y-%m-%d %H:%M:%S",      # standard
    "%Y-%m-%d-%H:%M:%S",      # hyphen between date and time
    "%Y-%m-%d",               # date only
    "%m/%d/%Y %H:%M:%S",      # canonical
    "%m/%d/%Y",               # canonical date only
    "%Y-%m-%d %H:%M %z",      # minutes + UTC offset
    "%Y-%m-%d %H:%M:%S %z",   # seconds + UTC offset (Apple Health)
    "%Y-%m-%d %H:%M:%S.%f",   # milliseconds
    "%a %b %d %H:%M:%S %Y",   # weekday month day time year (Nike+)
)


def _parse_strict(value: str) -> datetime | None:
    for fmt in INPUT_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _parse_flexible(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError) as e:
        raise UnparseableTimestamp(value, str(e)) from e


def _apply_timezone(value, parsed: datetime, timezone: str | None) -> datetime:
    if not timezone:
        # Aware inputs keep the wall-clock time they were written in.
        return parsed.replace(tzinfo=None)
    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise UnparseableTimestamp(value, f"unknown timezone {timezone!r}") from e
    if parsed.tzinfo is None:
        return parsed
    return parsed.astimezone(tz).replace(tzinfo=None)


def parse(value, timezone: str | None = None) -> datetime:
    """Parse any supported encoding into a naive datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        if value is None:
            raise UnparseableTimestamp(value, "empty value")
        text = str(value).strip()
        if not text:
            raise UnparseableTimestamp(value, "empty value")
        parsed = _parse_strict(text)
        if parsed is None:
            parsed = _parse_flexible(text)
    return _apply_timezone(value, parsed, timezone)


def normalize(value, timezone: str | None = None) -> str:
    """Normalize a timestamp to MM/DD/YYYY HH:MM:SS.

    Raises UnparseableTimestamp when neither a strict pattern nor the
    flexible fallback can read the value.
    """
    return parse(value, timezone).strftime(CANONICAL_FORMAT)


def normalize_date(value, timezone: str | None = None) -> str:
    """Normalize to MM/DD/YYYY, dropping the time of day."""
    return normalize(value, timezone).split(" ")[0]


def parse_canonical(value: str) -> datetime:
    try:
        return datetime.strptime(value, CANONICAL_FORMAT)
    except (TypeError, ValueError) as e:
        raise UnparseableTimestamp(value, "not in canonical format") from e


def is_valid_format(value) -> bool:
    try:
        parse_canonical(value)
    except UnparseableTimestamp:
        return False
    return True


def calculate_duration(start, end) -> int:
    """
    Signed whole minutes from start to end.

    A negative result means end precedes start; it is returned as-is so the
    caller can flag it.
    """
    start_dt = parse_canonical(normalize(start))
    end_dt = parse_canonical(normalize(end))
    return int((end_dt - start_dt).total_seconds() / 60)


def get_current_timestamp() -> str:
    return datetime.now().strftime(CANONICAL_FORMAT)
