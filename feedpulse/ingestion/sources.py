"""
Feed Source Loading
==================

Reads the source list document used by the command line tools:

    {"sources": [{"id": "...", "name": "...", "url": "...",
                  "category": "...", "active": true, "sourceName": "..."}]}
"""

import json
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError as PydanticValidationError

from ..models import FeedSource
from ..utils.exceptions import ConfigurationError, ErrorCode
from ..utils.logging import get_logger_for_component


logger = get_logger_for_component("sources")


def load_sources(path: Union[str, Path]) -> List[FeedSource]:
    """Load feed sources from a JSON file.

    A missing file yields an empty list.

    Raises:
        ConfigurationError: If the file is not a valid source list
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Source list not found: {path}")
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read source list {path}: {e}",
            config_key="sources",
            error_code=ErrorCode.CONFIG_MISSING,
        ) from e

    entries = data.get("sources", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigurationError(f"Source list {path} must contain a list of sources")

    try:
        sources = [FeedSource.model_validate(entry) for entry in entries]
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid source in {path}: {e}", config_key="sources") from e

    logger.info(f"Loaded {len(sources)} feed sources from {path}")
    return sources
