"""
Keyword categorizer
Assigns each project the category whose keywords best match its tags, name and description
"""

import logging
import argparse
from collections import Counter
from typing import List, Tuple

from .config import (
    CATEGORIES,
    DESCRIPTION_MATCH_SCORE,
    NAME_MATCH_SCORE,
    RESULTS_PATH,
    TAG_MATCH_SCORE,
    UNCATEGORIZED,
)
from .exceptions import DatasetError
from .records import load_json_array
from .utils import configure_logging, resolve_path, safe_write_json

logger = logging.getLogger(__name__)


def _text(value) -> str:
    if isinstance(value, list):
        value = " ".join(item for item in value if isinstance(item, str))
    return value.lower() if isinstance(value, str) else ""


def _tags(value) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [tag.lower() for tag in value if isinstance(tag, str)]


def score_project(project: dict, category: dict) -> int:
    """Score a project against one category definition"""
    tags = _tags(project.get("tags"))
    name = _text(project.get("name"))
    description = _text(project.get("description"))

    score = 0
    for keyword in category["keywords"]:
        keyword = keyword.lower()
        if keyword in tags:
            score += TAG_MATCH_SCORE
        if keyword in name:
            score += NAME_MATCH_SCORE
        if keyword in description:
            score += DESCRIPTION_MATCH_SCORE
    return score


def suggest_category(project: dict, categories: list = CATEGORIES) -> str:
    scores = {}
    for category in categories:
        score = score_project(project, category)
        if score > 0:
            scores[category["name"]] = score

    if scores:
        return max(scores, key=scores.get)
    return UNCATEGORIZED


def categorize_projects(projects: list, categories: list = CATEGORIES) -> Tuple[list, Counter]:
    """Return copies of the projects with a category set, plus counts per category"""
    updated = []
    stats = Counter()
    for project in projects:
        if not isinstance(project, dict):
            updated.append(project)
            continue
        category = suggest_category(project, categories)
        updated.append({**project, "category": category})
        stats[category] += 1
    return updated, stats


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Assign a category to every project in a results file')
    parser.add_argument('--input', default=RESULTS_PATH, help='Results JSON array')
    parser.add_argument('--output', help='Output path (defaults to the input path)')
    args = parser.parse_args(argv)
    configure_logging()

    input_path = resolve_path(args.input)
    output_path = resolve_path(args.output) if args.output else input_path

    try:
        projects = load_json_array(input_path, 'results')
    except DatasetError as e:
        logger.error(f"Error processing projects: {e}")
        return 1

    updated, stats = categorize_projects(projects)

    try:
        safe_write_json(output_path, updated)
    except OSError as e:
        logger.error(f"Failed to write {output_path}: {e}")
        return 1

    print("Categorization stats:")
    for category, count in stats.most_common():
        print(f"  {category}: {count}")
    print(f"Successfully updated {len(updated)} projects in {output_path}")
    return 0
