"""
Project tags
Tag cleanup and taxonomy-driven tag merging for the curated results
"""

import json
import logging
import argparse
from collections import Counter
from pathlib import Path
from typing import Dict, List, Tuple

import jsonschema
import yaml

from .config import (
    ATLAS_PROJECTS_PATH,
    ATLAS_TAGS_OUTPUT_PATH,
    LIBRARY_TAG,
    RAW_PROJECT_TAGS_PATH,
    REMOVABLE_TAGS,
    REPOSITORIES_FIELD,
    RESULTS_PATH,
    SMART_CONTRACT_TAG,
    TAG_TAXONOMY_PATH,
    TOP_TAGS_LIMIT,
)
from .exceptions import DatasetError, TaxonomyError
from .records import load_json_array, read_text
from .utils import canonicalize_tag, configure_logging, resolve_path, safe_write_json

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema" / "tag_taxonomy.schema.json"

# Fields of a tagging run that never belong in the published record
RAW_ONLY_FIELDS = ("rawTags", "readmeContent", "tags")


def ensure_string_list(value) -> List[str]:
    """Trimmed, non-empty strings from a list; anything else gives []"""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def is_truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    if isinstance(value, (int, float)):
        return value == 1
    return False


def has_library_repository(repositories) -> bool:
    """True when some repository publishes a crate or npm package"""
    if not isinstance(repositories, list):
        return False
    return any(
        isinstance(repo, dict) and (is_truthy(repo.get("crate")) or is_truthy(repo.get("npm_package")))
        for repo in repositories
    )


def clean_project_tags(project: dict) -> Tuple[List[str], bool]:
    """
    Drop tags that do not describe the project.

    sdk and api are always dropped; smart-contracts needs an on-chain contract
    and library needs a crate or npm package repository. Returns the cleaned
    tags and whether they differ from the original ones.
    """
    original = ensure_string_list(project.get("tags"))
    if not original:
        return original, False

    on_chain = is_truthy(project.get("is_on_chain_contract"))
    keep_library = has_library_repository(project.get(REPOSITORIES_FIELD))

    changed = False
    filtered = []
    for tag in original:
        canonical = tag.lower()
        if canonical in REMOVABLE_TAGS:
            changed = True
        elif canonical == SMART_CONTRACT_TAG and not on_chain:
            changed = True
        elif canonical == LIBRARY_TAG and not keep_library:
            changed = True
        else:
            filtered.append(tag)

    deduped = list(dict.fromkeys(filtered))
    if len(deduped) != len(original):
        changed = True
    return deduped, changed


def cleanup_tags(projects: list) -> Tuple[list, int, List[Tuple[str, int]]]:
    """
    Clean tags of every project in place.

    Returns the projects, how many were modified and the most common tags.
    """
    modified = 0
    for project in projects:
        if not isinstance(project, dict):
            continue
        tags, changed = clean_project_tags(project)
        if changed:
            modified += 1
        if "tags" in project or tags:
            project["tags"] = tags

    counts = Counter()
    for project in projects:
        if isinstance(project, dict):
            counts.update(ensure_string_list(project.get("tags")))

    return projects, modified, counts.most_common(TOP_TAGS_LIMIT)


def load_taxonomy(path: Path) -> Dict[str, str]:
    """
    Load the allowed tag list from a YAML or JSON taxonomy file.

    Returns a mapping of canonical tag to its display form.
    """
    path = Path(path)
    try:
        raw = read_text(path, "tag taxonomy")
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(raw)
        else:
            data = json.loads(raw)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise TaxonomyError(f"Failed to parse tag taxonomy at {path}: {e}") from e

    with open(SCHEMA_PATH, encoding="utf-8") as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise TaxonomyError(f"Invalid tag taxonomy at {path}: {e.message}") from e

    allowed = collect_allowed_tags(data["allowedTags"])
    logger.info(f"Loaded {len(allowed)} allowed tags from {path}")
    return allowed


def collect_allowed_tags(tags: list) -> Dict[str, str]:
    allowed = {}
    for tag in tags:
        if not isinstance(tag, str):
            continue
        canonical = canonicalize_tag(tag)
        if canonical:
            allowed[canonical] = tag

    if not allowed:
        raise TaxonomyError("No valid allowed tags found in tag taxonomy.")
    return allowed


def normalize_tags(value, allowed: Dict[str, str]) -> List[str]:
    """Display names of the allowed tags in value, first occurrence kept"""
    if not isinstance(value, list):
        return []

    seen = set()
    result = []
    for tag in value:
        if not isinstance(tag, str):
            continue
        canonical = canonicalize_tag(tag)
        if not canonical or canonical not in allowed or canonical in seen:
            continue
        seen.add(canonical)
        result.append(allowed[canonical])
    return result


def merge_tag_lists(lists: List[List[str]]) -> List[str]:
    return list(dict.fromkeys(tag for tags in lists for tag in tags))


def _require_id(entry, label: str, index: int) -> str:
    if not isinstance(entry, dict):
        raise DatasetError(f"{label} at index {index} is not a JSON object.")
    project_id = entry.get("id")
    if not isinstance(project_id, str) or not project_id.strip():
        raise DatasetError(f"{label} at index {index} is missing a valid id.")
    return project_id


def build_atlas_tags(raw_projects: list, atlas_projects: list, allowed: Dict[str, str]) -> List[dict]:
    """
    Combine tagged projects with their atlas records.

    Each output is the atlas record (or the tagged project without its
    tagging fields when the atlas has no match) carrying the union of atlas,
    existing and raw tags restricted to the taxonomy.
    """
    atlas_by_id = {}
    for index, entry in enumerate(atlas_projects):
        atlas_by_id[_require_id(entry, "Atlas project", index)] = entry

    merged = []
    for index, raw in enumerate(raw_projects):
        project_id = _require_id(raw, "Raw project", index)
        atlas = atlas_by_id.get(project_id)

        if atlas is None:
            logger.warning(f"No OP Atlas record found for id {project_id}; falling back to raw project data")
            base = {key: value for key, value in raw.items() if key not in RAW_ONLY_FIELDS}
            atlas_tags = []
        else:
            base = atlas
            atlas_tags = normalize_tags(atlas.get("tags"), allowed)

        tags = merge_tag_lists([
            atlas_tags,
            normalize_tags(raw.get("tags"), allowed),
            normalize_tags(raw.get("rawTags"), allowed),
        ])
        merged.append({**base, "tags": tags})

    return merged


def cleanup_main(argv=None) -> int:
    """Entry point for tag cleanup"""
    parser = argparse.ArgumentParser(description='Remove noisy tags from the curated results')
    parser.add_argument('--input', default=RESULTS_PATH, help='Source results JSON')
    parser.add_argument('--output', help='Path to write the updated JSON (defaults to input path)')
    parser.add_argument('--dry-run', action='store_true', help='Process without writing changes to disk')
    args = parser.parse_args(argv)
    configure_logging()

    input_path = resolve_path(args.input)
    output_path = resolve_path(args.output) if args.output else input_path

    try:
        projects = load_json_array(input_path, 'results')
    except DatasetError as e:
        logger.error(str(e))
        parser.print_usage()
        return 1

    projects, modified, top_tags = cleanup_tags(projects)

    if not args.dry_run:
        try:
            safe_write_json(output_path, projects)
        except OSError as e:
            logger.error(f"Failed to write {output_path}: {e}")
            return 1

    print(f"Processed {len(projects)} projects.")
    print(f"Tags updated for {modified} project{'' if modified == 1 else 's'}.")
    if args.dry_run:
        print("Dry run complete. No files were written.")
    else:
        print(f"Updated results written to: {output_path}")

    print(f"Top {TOP_TAGS_LIMIT} tags by project count:")
    if not top_tags:
        print("  (none)")
    else:
        for rank, (tag, count) in enumerate(top_tags, 1):
            print(f"  {rank}. {tag}: {count}")
        print(f"Total tally across top {TOP_TAGS_LIMIT}: {sum(count for _, count in top_tags)}")
    return 0


def atlas_main(argv=None) -> int:
    """Entry point for building atlas projects with taxonomy tags"""
    parser = argparse.ArgumentParser(description='Merge tagged projects into OP Atlas records')
    parser.add_argument('--raw', default=RAW_PROJECT_TAGS_PATH, help='Tagged projects JSON')
    parser.add_argument('--atlas', default=ATLAS_PROJECTS_PATH, help='Full OP Atlas export JSON')
    parser.add_argument('--taxonomy', default=TAG_TAXONOMY_PATH, help='Tag taxonomy (YAML or JSON)')
    parser.add_argument('--output', default=ATLAS_TAGS_OUTPUT_PATH, help='Output path')
    args = parser.parse_args(argv)
    configure_logging()

    output_path = resolve_path(args.output)
    try:
        raw_projects = load_json_array(resolve_path(args.raw), 'raw project tags file')
        atlas_projects = load_json_array(resolve_path(args.atlas), 'OP Atlas projects file')
        allowed = load_taxonomy(resolve_path(args.taxonomy))
        merged = build_atlas_tags(raw_projects, atlas_projects, allowed)
        safe_write_json(output_path, merged)
    except (DatasetError, OSError) as e:
        logger.error(str(e))
        return 1

    print(f"Wrote {len(merged)} projects to {output_path}")
    return 0
