"""
Shared utilities for dataset scripts.
"""

import re
import json
import logging
from pathlib import Path
from typing import Optional

from .config import COLLAPSED_SUFFIX, DEFAULT_EXTENSION, LOG_FORMAT

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def canonicalize_tag(tag: str) -> str:
    """
    Normalize a tag: lowercase, hyphen separated, only [a-z0-9+-].

    Examples:
        "Smart Contracts" -> "smart-contracts"
        "account_abstraction" -> "account-abstraction"
        "C++ " -> "c++"
        "--Zero Knowledge!--" -> "zero-knowledge"
    """
    if not tag:
        return ""
    tag = tag.lower().strip()
    tag = re.sub(r'[\s_]+', '-', tag)
    tag = re.sub(r'[^a-z0-9+-]', '-', tag)
    # Collapse consecutive hyphens, strip leading/trailing
    tag = re.sub(r'-+', '-', tag)
    return tag.strip('-')


def resolve_path(path) -> Path:
    """Absolute path, relative values resolved against the working directory"""
    return Path(path).expanduser().resolve()


def default_output_path(input_path: Path, output_path: Optional[str] = None) -> Path:
    """
    Output path for a collapsed dataset.

    Defaults to <stem>.collapsed<ext> next to the input, using .json when the
    input has no extension.
    """
    if output_path:
        return resolve_path(output_path)
    input_path = Path(input_path)
    extension = input_path.suffix or DEFAULT_EXTENSION
    return input_path.with_name(f"{input_path.stem}{COLLAPSED_SUFFIX}{extension}")


def safe_write_json(path: Path, data) -> None:
    """
    Write JSON atomically through a temp file.

    The previous file is only replaced once the new content is fully written;
    on failure the temp file is removed and the error propagates.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        temp_path.replace(path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise
    logger.debug(f"Wrote {path}")
