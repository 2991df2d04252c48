"""
Hand-filtered outputs
Select collapsed projects from a curated id list and report reward recipients left out
"""

import logging
import argparse
from typing import List, Set

from .config import (
    COLLAPSED_RESULTS_PATH,
    DEFAULT_REWARD_ROUND,
    FUNDING_BOOKKEEPING_FIELDS,
    FUNDING_ROUND_FIELD,
    HAND_FILTERED_MATCHED_PATH,
    HAND_FILTERED_PATH,
    OP_REWARDS_FIELD,
    PROJECT_BOOKKEEPING_FIELDS,
    REPOSITORIES_FIELD,
    REPOSITORY_BOOKKEEPING_FIELDS,
    ROUND_UNMATCHED_PATH,
    SELF_FUNDING_FIELD,
)
from .exceptions import DatasetError
from .records import clone, format_scalar, load_json_array
from .utils import configure_logging, resolve_path, safe_write_json

logger = logging.getLogger(__name__)


def _project_id(project) -> str:
    if isinstance(project, dict) and isinstance(project.get("id"), str):
        return project["id"].lower()
    return ""


def build_id_set(records: list, source: str = "") -> Set[str]:
    """Lower-cased string ids of the records"""
    ids = {_project_id(record) for record in records} - {""}
    if not ids:
        logger.warning(f"No valid id fields found in {source or 'dataset'}")
    return ids


def _strip(entries, fields: List[str]):
    if not isinstance(entries, list):
        return entries
    return [
        {key: value for key, value in entry.items() if key not in fields}
        for entry in entries
        if isinstance(entry, dict)
    ]


def sanitize_project(project: dict) -> dict:
    """Copy of a project without warehouse bookkeeping fields"""
    cleaned = {key: clone(value) for key, value in project.items() if key not in PROJECT_BOOKKEEPING_FIELDS}
    if REPOSITORIES_FIELD in cleaned:
        cleaned[REPOSITORIES_FIELD] = _strip(cleaned[REPOSITORIES_FIELD], REPOSITORY_BOOKKEEPING_FIELDS)
    for field in (SELF_FUNDING_FIELD, OP_REWARDS_FIELD):
        if field in cleaned:
            cleaned[field] = _strip(cleaned[field], FUNDING_BOOKKEEPING_FIELDS)
    return cleaned


def select_hand_filtered(results: list, hand_filtered_ids: Set[str]) -> List[dict]:
    return [project for project in results if _project_id(project) in hand_filtered_ids]


def has_reward_round(project: dict, round_id: str) -> bool:
    rewards = project.get(OP_REWARDS_FIELD)
    if not isinstance(rewards, list):
        return False
    for entry in rewards:
        if not isinstance(entry, dict) or FUNDING_ROUND_FIELD not in entry:
            continue
        value = entry[FUNDING_ROUND_FIELD]
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int, float)) and format_scalar(value) == round_id:
            return True
    return False


def select_round_unmatched(results: list, matched_ids: Set[str], round_id: str = DEFAULT_REWARD_ROUND) -> List[dict]:
    """Projects rewarded in round_id that are not among matched_ids"""
    unmatched = []
    for project in results:
        project_id = _project_id(project)
        if not project_id or project_id in matched_ids:
            continue
        if has_reward_round(project, round_id):
            unmatched.append(project)
    return unmatched


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Build hand-filtered project outputs')
    parser.add_argument('--results', default=COLLAPSED_RESULTS_PATH, help='Collapsed results dataset')
    parser.add_argument('--hand-filtered', default=HAND_FILTERED_PATH, help='Hand-filtered dataset')
    parser.add_argument('--matched-output', default=HAND_FILTERED_MATCHED_PATH, help='Matched output path')
    parser.add_argument('--unmatched-output', default=ROUND_UNMATCHED_PATH,
                        help='Unmatched reward recipients output path')
    parser.add_argument('--round', default=DEFAULT_REWARD_ROUND, help='Reward round to report')
    args = parser.parse_args(argv)
    configure_logging()

    hand_filtered_path = resolve_path(args.hand_filtered)
    matched_path = resolve_path(args.matched_output)
    unmatched_path = resolve_path(args.unmatched_output)

    try:
        results = load_json_array(resolve_path(args.results), 'collapsed results dataset')
        hand_filtered = load_json_array(hand_filtered_path, 'hand-filtered dataset')
    except DatasetError as e:
        logger.error(str(e))
        return 1

    matched = select_hand_filtered(results, build_id_set(hand_filtered, str(hand_filtered_path)))
    matched_ids = {_project_id(project) for project in matched}
    unmatched = select_round_unmatched(results, matched_ids, args.round)

    try:
        safe_write_json(matched_path, [sanitize_project(project) for project in matched])
        safe_write_json(unmatched_path, [sanitize_project(project) for project in unmatched])
    except OSError as e:
        logger.error(f"Failed to write outputs: {e}")
        return 1

    print(f"Hand-filtered matched projects: {len(matched)}")
    print(f"Round {args.round} OP reward projects not already matched: {len(unmatched)}")
    print(f"Matched output written to: {matched_path}")
    print(f"Round {args.round} unmatched output written to: {unmatched_path}")
    return 0
