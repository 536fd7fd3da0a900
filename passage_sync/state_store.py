"""Load and save the persisted sync state.

The state file holds, per repo, the agent ID, the passage map and the last
sync commit. It is the local half of the consistency pair; the remote half
lives on the provider.

Stored as: ~/.passage-sync/state.json
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from passage_sync.core.passage_map import AppState, create_empty_state
from passage_sync.exceptions import StateError

logger = logging.getLogger(__name__)


def load_state(path: Path) -> AppState:
    """Load state from disk.

    Args:
        path: Path to the state file

    Returns:
        Loaded state, or an empty state if the file does not exist

    Raises:
        StateError: If the file exists but is not valid state JSON
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No state file found at {path}")
        return create_empty_state()

    try:
        with open(path, "r") as f:
            data = json.load(f)
        state = AppState.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise StateError(f"Failed to load state from {path}: {e}") from e

    logger.debug(f"Loaded state with {len(state.agents)} agents")
    return state


def save_state(path: Path, state: AppState) -> None:
    """Save state to disk.

    The file is written to a temporary sibling first and then moved into
    place, so a crash mid-write never leaves a truncated state file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(state.model_dump(mode="json"), f, indent=2)
        os.replace(tmp_name, path)
    except OSError as e:
        logger.error(f"Failed to save state: {e}")
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug(f"Saved state with {len(state.agents)} agents to {path}")
