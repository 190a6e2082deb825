"""Checkpoint save/load for world state.

Checkpoints are taken at tick boundaries (after Advancing), so a run
can be reproduced from the last checkpoint plus the tick logs that
follow it.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from ..world.state import WorldState
from .types import CheckpointData

# Current checkpoint format version
CHECKPOINT_VERSION = 1


def save_checkpoint(world: WorldState, checkpoint_file: str | Path, reason: str) -> str:
    """Save world state to a checkpoint file.

    Uses atomic write (temp file + rename) so an interrupted save never
    leaves a truncated checkpoint behind.

    Args:
        world: The WorldState to checkpoint
        checkpoint_file: Destination path
        reason: Why the checkpoint was taken (e.g. "interval", "halted")

    Returns:
        Path to the saved checkpoint file
    """
    checkpoint: CheckpointData = {
        "version": CHECKPOINT_VERSION,
        "tick": world.tick,
        "world": world.to_dict(),
        "reason": reason,
        "timestamp": datetime.now().isoformat(),
    }

    path = Path(checkpoint_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = f"{path}.tmp"
    with open(temp_file, "w") as f:
        json.dump(checkpoint, f, indent=2)

    # Atomic rename - if interrupted here, the previous checkpoint remains valid
    os.replace(temp_file, path)

    return str(path)


def load_checkpoint(checkpoint_file: str | Path) -> WorldState | None:
    """Load world state from a checkpoint file.

    Returns:
        The restored WorldState, or None if the file does not exist.

    Raises:
        ValueError: If the checkpoint was written by a newer format version
    """
    checkpoint_path = Path(checkpoint_file)
    if not checkpoint_path.exists():
        return None

    with open(checkpoint_path) as f:
        data: dict[str, Any] = json.load(f)

    version = int(data.get("version", CHECKPOINT_VERSION))
    if version > CHECKPOINT_VERSION:
        raise ValueError(
            f"Checkpoint version {version} is newer than supported version {CHECKPOINT_VERSION}"
        )

    return WorldState.from_dict(data["world"])
