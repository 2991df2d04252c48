"""
Record collapse/merge engine
Collapses records sharing an id into one record built from the freshest versions
"""

import logging
import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .config import (
    DEFAULT_ID_FIELD,
    DEFAULT_METADATA_FIELD,
    OP_REWARDS_FIELD,
    REPO_FIELD_PREFIX,
    REPOSITORIES_FIELD,
    SELF_FUNDING_FIELD,
)
from .exceptions import DatasetError
from .funding import apply_funding_attachments, load_funding_index
from .records import (
    IdKey,
    build_id_key,
    canonical_key,
    clone,
    is_internal_key,
    is_json_object,
    is_meaningless,
    load_records,
    strip_internal_keys,
    to_comparable_string,
    to_timestamp,
)
from .utils import configure_logging, default_output_path, resolve_path, safe_write_json

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CollapseOptions:
    id_field: str = DEFAULT_ID_FIELD
    metadata_field: str = DEFAULT_METADATA_FIELD


@dataclass
class CollapseSummary:
    total_records: int = 0
    unique_ids: int = 0
    used_records: int = 0
    merged_records: int = 0
    missing_id: int = 0
    missing_metadata: int = 0
    older_records_skipped: int = 0


@dataclass
class CollapseResult:
    collapsed: List[dict] = field(default_factory=list)
    summary: CollapseSummary = field(default_factory=CollapseSummary)


@dataclass
class _Group:
    metadata: object
    records: List[dict]


def compare_metadata(next_value, current_value) -> int:
    """
    Compare two freshness values: 1 if next is newer, -1 if older, 0 if equal.

    Values that both parse as timestamps and differ are compared in time;
    everything else falls back to plain string comparison.
    """
    next_ts = to_timestamp(next_value)
    current_ts = to_timestamp(current_value)
    if next_ts is not None and current_ts is not None and next_ts != current_ts:
        return 1 if next_ts > current_ts else -1

    next_str = to_comparable_string(next_value)
    current_str = to_comparable_string(current_value)
    if next_str == current_str:
        return 0
    return 1 if next_str > current_str else -1


def collapse_records(records: list, options: Optional[CollapseOptions] = None) -> CollapseResult:
    """Group records by id, keep the freshest group per id and merge it"""
    options = options or CollapseOptions()
    summary = CollapseSummary(total_records=len(records))
    groups: Dict[IdKey, _Group] = {}

    for record in records:
        if not is_json_object(record) or options.id_field not in record:
            summary.missing_id += 1
            continue

        metadata = record.get(options.metadata_field)
        if is_meaningless(metadata):
            summary.missing_metadata += 1
            continue

        key = build_id_key(record[options.id_field])
        group = groups.get(key)
        if group is None:
            groups[key] = _Group(metadata=metadata, records=[record])
            continue

        comparison = compare_metadata(metadata, group.metadata)
        if comparison > 0:
            summary.older_records_skipped += len(group.records)
            group.metadata = metadata
            group.records = [record]
        elif comparison == 0:
            group.records.append(record)
        else:
            summary.older_records_skipped += 1

    collapsed = []
    for group in groups.values():
        collapsed.append(merge_group_records(group.records))
        summary.used_records += len(group.records)

    summary.unique_ids = len(collapsed)
    summary.merged_records = summary.used_records - summary.unique_ids
    return CollapseResult(collapsed=collapsed, summary=summary)


def merge_field(existing, incoming):
    """
    Union of unique, non-empty values in first-seen order.

    A single surviving value is returned as a scalar. When nothing survives
    the existing value is kept (an empty list if there was none).
    """
    values = []
    seen = set()

    def add_value(value):
        if is_meaningless(value):
            return
        key = canonical_key(value)
        if key not in seen:
            seen.add(key)
            values.append(clone(value))

    if existing is not _MISSING:
        for value in (existing if isinstance(existing, list) else [existing]):
            add_value(value)

    for value in (incoming if isinstance(incoming, list) else [incoming]):
        add_value(value)

    if not values:
        return [] if existing is _MISSING else existing
    return values[0] if len(values) == 1 else values


def merge_group_records(records: List[dict]) -> dict:
    merged = {}
    repositories = []

    for record in records:
        repo_entries, other_entries = extract_repository_entries(record)
        repositories.extend(repo_entries)
        for key, value in other_entries:
            merged[key] = merge_field(merged.get(key, _MISSING), value)

    if repositories:
        merged[REPOSITORIES_FIELD] = merge_repositories(merged.get(REPOSITORIES_FIELD, _MISSING), repositories)

    return merged


def extract_repository_entries(record: dict):
    """
    Split a record into repository objects and its remaining fields.

    Repositories come from a "repositories" list (or single object) and from
    repo_<attr> fields, which are zipped into objects.
    """
    repo_fields = {}
    repo_objects = []
    other_entries = []

    for key, value in record.items():
        if is_internal_key(key):
            continue
        if key == REPOSITORIES_FIELD:
            repo_objects.extend(normalize_repository_collection(value))
            continue
        if key.startswith(REPO_FIELD_PREFIX):
            attribute = key[len(REPO_FIELD_PREFIX):]
            if attribute:
                repo_fields[attribute] = value
            continue
        other_entries.append((key, value))

    return repo_objects + build_repository_objects(repo_fields), other_entries


def normalize_repository_value(value) -> list:
    if isinstance(value, list):
        return [item for item in value if not is_meaningless(item)]
    if is_meaningless(value):
        return []
    return [value]


def build_repository_objects(repo_fields: dict) -> List[dict]:
    """
    Zip repo_<attr> values into repository objects by position.

    Attributes with a single value are repeated for every position.

    Example:
        {"url": ["u1", "u2"], "stars": 5}
        -> [{"url": "u1", "stars": 5}, {"url": "u2", "stars": 5}]
    """
    normalized = {}
    for key, value in repo_fields.items():
        values = normalize_repository_value(value)
        if values:
            normalized[key] = values

    if not normalized:
        return []

    size = max(len(values) for values in normalized.values())
    repositories = []
    for index in range(size):
        repository = {}
        for key, values in normalized.items():
            if index < len(values):
                repository[key] = clone(values[index])
            elif len(values) == 1:
                repository[key] = clone(values[0])
        if repository:
            repositories.append(repository)

    return repositories


def normalize_repository_collection(value) -> List[dict]:
    if isinstance(value, list):
        return [strip_internal_keys(item) for item in value if is_json_object(item)]
    if is_json_object(value):
        return [strip_internal_keys(value)]
    return []


def repository_key(repository: dict):
    """Dedup key: url, then id, then type, then the whole object"""
    for attribute in ("url", "id", "type"):
        value = repository.get(attribute)
        if isinstance(value, str) and value.strip():
            return (attribute, value.strip())
    return ("anon", canonical_key(repository))


def merge_repositories(existing, incoming: List[dict]) -> List[dict]:
    by_key = {}

    def upsert(value):
        if not is_json_object(value):
            return
        sanitized = strip_internal_keys(value)
        if not sanitized:
            return
        key = repository_key(sanitized)
        current = by_key.get(key)
        if current is None:
            by_key[key] = sanitized
            return
        for attribute, entry in sanitized.items():
            current[attribute] = merge_field(current.get(attribute, _MISSING), entry)

    if existing is not _MISSING:
        for value in (existing if isinstance(existing, list) else [existing]):
            upsert(value)

    for value in incoming:
        upsert(value)

    return list(by_key.values())


def format_summary(summary: CollapseSummary, output_path: Path, id_field: str, metadata_field: str) -> str:
    lines = [
        f"Collapsed records written to {output_path}",
        f"  Total input records: {summary.total_records}",
        f"  Unique ids: {summary.unique_ids}",
        f"  Records used (latest {metadata_field}): {summary.used_records}",
        f"  Records merged: {summary.merged_records}",
        f"  Records skipped (missing {id_field}): {summary.missing_id}",
        f"  Records skipped (missing {metadata_field}): {summary.missing_metadata}",
        f"  Records skipped (older {metadata_field}): {summary.older_records_skipped}",
    ]
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Collapse records that share an id into one record built from their most '
                    'recent versions. Merged fields hold the unique, non-empty values. Optional '
                    'funding datasets are joined by project id as selfReportedFunding and opRewards.'
    )
    parser.add_argument('input_path', help='JSON array or newline-delimited JSON file')
    parser.add_argument('output_path', nargs='?', help='Output path (default: <input>.collapsed.json)')
    parser.add_argument('id_field', nargs='?', default=DEFAULT_ID_FIELD, help='Identity field')
    parser.add_argument('metadata_field', nargs='?', default=DEFAULT_METADATA_FIELD,
                        help='Freshness field used to pick the latest records')
    parser.add_argument('self_funding_path', nargs='?', help='Self-reported funding dataset')
    parser.add_argument('op_rewards_path', nargs='?', help='OP rewards dataset')
    return parser


def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    configure_logging()

    options = CollapseOptions(id_field=args.id_field, metadata_field=args.metadata_field)
    input_path = resolve_path(args.input_path)
    output_path = default_output_path(input_path, args.output_path)

    try:
        records = load_records(input_path, 'input')
        result = collapse_records(records, options)

        attachments = {SELF_FUNDING_FIELD: None, OP_REWARDS_FIELD: None}
        if args.self_funding_path:
            attachments[SELF_FUNDING_FIELD] = load_funding_index(
                resolve_path(args.self_funding_path), 'self-reported funding')
        if args.op_rewards_path:
            attachments[OP_REWARDS_FIELD] = load_funding_index(
                resolve_path(args.op_rewards_path), 'OP rewards')

        final_records = apply_funding_attachments(result.collapsed, options.id_field, attachments)
    except DatasetError as e:
        logger.error(str(e))
        return 1

    try:
        safe_write_json(output_path, final_records)
    except OSError as e:
        logger.error(f"Failed to write output file at {output_path}: {e}")
        return 1

    print(format_summary(result.summary, output_path, options.id_field, options.metadata_field))
    return 0
