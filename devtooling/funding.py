"""
Funding attachment
Joins self-reported funding and program reward entries onto collapsed projects
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .config import (
    DEFAULT_ID_FIELD,
    FUNDING_AMOUNT_FIELD,
    FUNDING_PROJECT_FIELD,
    FUNDING_ROUND_FIELD,
    FUNDING_UPDATED_FIELD,
)
from .records import (
    IdKey,
    build_id_key,
    canonical_key,
    is_json_object,
    is_meaningless,
    load_records,
    strip_internal_keys,
    to_comparable_string,
    to_timestamp,
)

logger = logging.getLogger(__name__)

FundingIndex = Dict[IdKey, List[dict]]


def has_meaningful_amount(value) -> bool:
    """
    False for missing, null, blank and zero amounts.

    Numeric strings may use thousands separators ("1,000"); strings that are
    not numeric at all still count as meaningful.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return False
        try:
            return float(text.replace(",", "")) != 0
        except ValueError:
            return True
    return True


def build_funding_index(records: list, project_field: str = FUNDING_PROJECT_FIELD) -> FundingIndex:
    """Group funding entries by project identity, dropping empty amounts"""
    index: FundingIndex = {}
    dropped = 0

    for record in records:
        if not is_json_object(record):
            dropped += 1
            continue

        project_id = record.get(project_field)
        if is_meaningless(project_id):
            dropped += 1
            continue

        if not has_meaningful_amount(record.get(FUNDING_AMOUNT_FIELD)):
            dropped += 1
            continue

        sanitized = strip_internal_keys(record)
        if not sanitized:
            dropped += 1
            continue

        index.setdefault(build_id_key(project_id), []).append(sanitized)

    logger.info(f"Indexed funding for {len(index)} projects ({dropped} entries dropped)")
    return index


def load_funding_index(path: Path, label: str, project_field: str = FUNDING_PROJECT_FIELD) -> FundingIndex:
    """Load and index a funding dataset; failures raise DatasetLoadError"""
    records = load_records(path, label)
    return build_funding_index(records, project_field)


def funding_key(record: dict):
    round_id = record.get(FUNDING_ROUND_FIELD)
    if isinstance(round_id, str) and round_id.strip():
        return ("round", round_id.strip())
    if isinstance(round_id, (int, float)) and not isinstance(round_id, bool):
        return ("round", str(round_id))
    return ("entry", canonical_key(record))


def pick_latest_by_updated_at(left: dict, right: dict) -> dict:
    """
    Choose between two entries for the same round.

    When both timestamps parse the strictly later one wins (left on a tie);
    otherwise the values are compared as strings and right wins a tie.
    """
    left_value = left.get(FUNDING_UPDATED_FIELD)
    right_value = right.get(FUNDING_UPDATED_FIELD)

    left_ts = to_timestamp(left_value)
    right_ts = to_timestamp(right_value)
    if left_ts is not None and right_ts is not None:
        return right if right_ts > left_ts else left

    left_str = to_comparable_string(left_value)
    right_str = to_comparable_string(right_value)
    if left_str == right_str:
        return right
    return right if right_str > left_str else left


def merge_funding_entries(existing, incoming: List[dict],
                          project_field: str = FUNDING_PROJECT_FIELD) -> List[dict]:
    """Union of existing and incoming entries, one per round"""
    seen = {}

    def add_entry(value):
        if not is_json_object(value):
            return
        sanitized = strip_internal_keys(value)
        if not sanitized:
            return
        key = funding_key(sanitized)
        current = seen.get(key)
        seen[key] = sanitized if current is None else pick_latest_by_updated_at(current, sanitized)

    if existing is not None:
        if isinstance(existing, list):
            for value in existing:
                add_entry(value)
        else:
            add_entry(existing)

    for entry in incoming:
        add_entry(entry)

    hidden = {DEFAULT_ID_FIELD, project_field}
    return [
        {key: value for key, value in entry.items() if key not in hidden}
        for entry in seen.values()
    ]


def attach_funding(records: List[dict], index: FundingIndex, id_field: str, target_field: str,
                   project_field: str = FUNDING_PROJECT_FIELD) -> int:
    """Attach indexed entries under target_field; returns how many records matched"""
    attached = 0
    for record in records:
        if id_field not in record:
            continue
        entries = index.get(build_id_key(record[id_field]))
        if not entries:
            continue
        record[target_field] = merge_funding_entries(record.get(target_field), entries, project_field)
        attached += 1
    return attached


def apply_funding_attachments(records: List[dict], id_field: str,
                              attachments: Dict[str, Optional[FundingIndex]]) -> List[dict]:
    for target_field, index in attachments.items():
        if index is None:
            continue
        attached = attach_funding(records, index, id_field, target_field)
        logger.info(f"Attached {target_field} to {attached} records")
    return records
