"""
JSON record helpers
Parsing, structural keys and value tests shared by the dataset transforms
"""

import re
import copy
import json
import math
import logging
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .config import INTERNAL_KEY_PREFIX
from .exceptions import DatasetLoadError, RecordParseError

logger = logging.getLogger(__name__)

Number = Union[int, float]
IdKey = Union[str, tuple]


def is_json_object(value) -> bool:
    return isinstance(value, dict)


def is_meaningless(value) -> bool:
    """True for null and blank strings, the values merging ignores"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def is_internal_key(key: str) -> bool:
    return key.startswith(INTERNAL_KEY_PREFIX)


def strip_internal_keys(record: dict) -> dict:
    """Deep copy of record without loader bookkeeping keys"""
    return {key: clone(value) for key, value in record.items() if not is_internal_key(key)}


def clone(value):
    return copy.deepcopy(value)


def canonical_key(value):
    """
    Hashable canonical form of a JSON value.

    Objects compare equal regardless of key order, and numbers compare by
    value (1 == 1.0) but never equal a boolean.
    """
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, list):
        return ("array", tuple(canonical_key(item) for item in value))
    if isinstance(value, dict):
        return ("object", tuple(sorted((key, canonical_key(item)) for key, item in value.items())))
    raise TypeError(f"Unsupported JSON value of type {type(value).__name__}")


def canonical_json(value) -> str:
    """Stable string form of a JSON value (sorted keys, no whitespace)"""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def format_scalar(value) -> str:
    """String form of a scalar as it appears in JSON text"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_id_key(value) -> IdKey:
    """
    Grouping key for an identity value.

    Scalars group by their string form, so 1 and "1" are the same identity;
    lists and objects group by their canonical structural key.
    """
    if value is None:
        return "null"
    if isinstance(value, (str, bool, int, float)):
        return format_scalar(value)
    if isinstance(value, (list, dict)):
        return canonical_key(value)
    raise TypeError(f"Unsupported identity value of type {type(value).__name__}")


# Date and time with an optional fraction and zone, as written by ISO-8601
# and SQL warehouse exports ("2024-06-01 12:00:00.123 UTC")
DATETIME_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}(?::\d{2})?)(?:[.,](\d+))?\s*(Z|z|UTC|GMT|[+-]\d{2}(?::?\d{2})?)?$"
)


def _normalize_datetime(text: str) -> str:
    """Rewrite a date-time string into the form datetime.fromisoformat accepts"""
    match = DATETIME_PATTERN.match(text)
    if not match:
        return text.replace("Z", "+00:00")

    date, time, fraction, zone = match.groups()
    if len(time) == 5:
        time += ":00"
    if fraction:
        time += "." + fraction[:6].ljust(6, "0")
    if zone is None:
        offset = ""
    elif zone in ("Z", "z", "UTC", "GMT"):
        offset = "+00:00"
    else:
        digits = zone[1:].replace(":", "").ljust(4, "0")
        offset = f"{zone[0]}{digits[:2]}:{digits[2:]}"
    return f"{date}T{time}{offset}"


def parse_datetime(text: str) -> Optional[datetime]:
    """
    Parse an ISO-8601, SQL-style or RFC 2822 date string.

    Returns None when the text is none of these.
    """
    try:
        return datetime.fromisoformat(_normalize_datetime(text))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def to_timestamp(value) -> Optional[Number]:
    """
    Interpret a value as a point in time.

    Numbers are taken as-is; date strings (ISO-8601, "YYYY-MM-DD HH:MM:SS UTC"
    or RFC 2822) are converted to epoch milliseconds, naive values read as UTC.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = parse_datetime(text)
        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp() * 1000
    return None


def to_comparable_string(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return format_scalar(value)
    if isinstance(value, (list, dict)):
        return canonical_json(value)
    raise TypeError(f"Unsupported JSON value of type {type(value).__name__}")


def parse_records(raw: str) -> list:
    """
    Parse a JSON array or newline-delimited JSON objects.

    Raises RecordParseError when the text is neither; nothing is returned
    for partially valid input.
    """
    text = raw.strip()
    if not text:
        return []

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return _parse_ndjson(text, e)

    if isinstance(parsed, list):
        return parsed
    # A lone object on one line is NDJSON with a single record
    if isinstance(parsed, dict) and "\n" not in text:
        return [parsed]

    raise RecordParseError("Expected a JSON array or newline-delimited JSON objects.")


def _parse_ndjson(text: str, original_error: json.JSONDecodeError) -> list:
    records = []
    for line_number, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise RecordParseError(f"Invalid JSON on line {line_number}: {e}") from e
        if not is_json_object(record):
            raise RecordParseError(f"Invalid JSON: {original_error}") from original_error
        records.append(record)
    return records


def read_text(path: Path, label: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise DatasetLoadError(f"Failed to read {label} data from {path}: {e}") from e


def load_records(path: Path, label: str = "input") -> list:
    """Read a JSON array or NDJSON file of records"""
    raw = read_text(path, label)
    try:
        records = parse_records(raw)
    except RecordParseError as e:
        raise DatasetLoadError(f"Failed to parse {label} data from {path}: {e}") from e
    logger.info(f"Loaded {len(records)} {label} records from {path}")
    return records


def load_json(path: Path, label: str):
    raw = read_text(path, label)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise DatasetLoadError(f"Failed to parse {label} at {path} as JSON: {e}") from e


def load_json_array(path: Path, label: str) -> list:
    data = load_json(path, label)
    if not isinstance(data, list):
        raise DatasetLoadError(f"Expected {label} at {path} to be a JSON array.")
    return data
